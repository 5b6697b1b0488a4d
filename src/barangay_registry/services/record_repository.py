"""
# Record Repository

This module maps typed `Resident` / `FamilyHead` records onto Redis hashes and keeps
the family membership index consistent with every resident's `familyHeadId`.

## Consistency Rules

- **Referential integrity**: a resident's `familyHeadId` must name an existing family
  head. The family head key is WATCHed and re-checked inside the write, so a family
  head deleted concurrently aborts the write instead of leaving a dangling reference.
  A rejected request leaves no trace apart from a consumed sequence number.
- **Membership sync**: every write that changes a resident's `familyHeadId` commits
  the record hash and both membership sets in one MULTI/EXEC transaction.
- **No resurrection**: updates WATCH the record they replace, so a record deleted
  concurrently stays deleted.
- **Delete guard**: a family head with members cannot be deleted. The membership set
  is WATCHed so a member added concurrently aborts the delete.
- **Address cascade**: when a family head's address changes, each member's address is
  rewritten in its own WATCH/MULTI transaction and every member yields an outcome.

## Usage Example

```python
redis = await redis_manager.get_redis()
repository = RecordRepository(redis)

head = await repository.create_family_head({...})
resident = await repository.create_resident({..., "familyHeadId": head.id})
```
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar, Union

import redis.asyncio as aioredis
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError, WatchError

from barangay_registry.exceptions import (
    RecordConflictError,
    RecordNotFoundError,
    RecordValidationError,
    StoreError,
)
from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.managers.redis_manager import (
    FAMILY_HEAD_KEY_PREFIX,
    RESIDENT_KEY_PREFIX,
    family_head_key,
    family_members_key,
    resident_key,
)
from barangay_registry.models.record_models import (
    FamilyHead,
    FamilyHeadCreate,
    FamilyHeadUpdate,
    FamilyHeadUpdateResult,
    MemberUpdateOutcome,
    PersonRecord,
    RecordType,
    Resident,
    ResidentCreate,
    ResidentUpdate,
    validation_errors,
)
from barangay_registry.services.id_generator import FAMILY_HEAD_PREFIX, RESIDENT_PREFIX, IdGenerator, utc_now
from barangay_registry.services.membership_index import MembershipIndex

logger = get_logger(prefix="[RecordRepository]")

PayloadT = TypeVar("PayloadT", bound=BaseModel)

IMMUTABLE_FIELDS = {"id", "type", "registrationDate"}

RESIDENT_ENTITY = "Resident"
FAMILY_HEAD_ENTITY = "Family head"


@contextmanager
def store_errors(action: str):
    """Translate Redis failures inside the block into `StoreError`."""
    try:
        yield
    except WatchError:
        raise
    except RedisError as e:
        logger.error("Store failure while trying to %s: %s", action, e)
        raise StoreError(f"Could not {action}") from e


class RecordRepository:
    """
    CRUD over residents and family heads.

    Attributes:
        redis: The shared asyncio Redis client.
        ids: Identifier generator.
        membership: Membership index.
        clock: Source of `registrationDate` timestamps.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        id_generator: Optional[IdGenerator] = None,
        membership: Optional[MembershipIndex] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.redis = redis
        self.clock = clock
        self.ids = id_generator or IdGenerator(redis, clock=clock)
        self.membership = membership or MembershipIndex(redis)

    # --- Validation helpers ---

    @staticmethod
    def _validate(model: Type[PayloadT], fields: Union[PayloadT, Mapping[str, Any]]) -> PayloadT:
        if isinstance(fields, model):
            return fields
        if isinstance(fields, BaseModel):
            fields = fields.model_dump()
        try:
            return model.model_validate(fields)
        except ValidationError as e:
            raise RecordValidationError("Invalid record fields", validation_errors(e)) from e

    @staticmethod
    def _missing_family_head(family_head_id: str) -> RecordConflictError:
        logger.warning("Rejected reference to missing family head %s", family_head_id)
        return RecordConflictError("Family head does not exist", details={"familyHeadId": family_head_id})

    async def _require_family_head(self, family_head_id: str) -> None:
        with store_errors(f"check family head {family_head_id}"):
            exists = await self.redis.exists(family_head_key(family_head_id))
        if not exists:
            raise self._missing_family_head(family_head_id)

    async def _write_resident(self, resident: Resident, old_family_head: Optional[str] = None, replace: bool = False):
        """
        Commit a resident hash and its membership changes in one transaction.

        The target family head is WATCHed and re-checked, and so is the resident
        itself when `replace` is set.

        Raises:
            RecordConflictError: If the family head is gone (400) or a watched key
                changed before EXEC (409).
            RecordNotFoundError: If the resident being replaced is gone.
        """
        key = resident_key(resident.id)
        new_family_head = resident.familyHeadId
        watched = [family_head_key(new_family_head)] if new_family_head else []
        if replace:
            watched.append(key)

        try:
            with store_errors(f"write resident {resident.id}"):
                async with self.redis.pipeline(transaction=True) as pipe:
                    if watched:
                        await pipe.watch(*watched)
                    if new_family_head and not await pipe.exists(family_head_key(new_family_head)):
                        await pipe.unwatch()
                        raise self._missing_family_head(new_family_head)
                    if replace and not await pipe.exists(key):
                        await pipe.unwatch()
                        raise RecordNotFoundError(RESIDENT_ENTITY, resident.id)
                    pipe.multi()
                    if replace:
                        pipe.delete(key)
                    pipe.hset(key, mapping=resident.to_hash())
                    if old_family_head and old_family_head != new_family_head:
                        self.membership.queue_remove(pipe, old_family_head, resident.id)
                    if new_family_head:
                        self.membership.queue_add(pipe, new_family_head, resident.id)
                    await pipe.execute()
        except WatchError as e:
            logger.warning("Write of resident %s aborted by a concurrent change", resident.id)
            raise RecordConflictError(
                "Record changed while saving; retry the request",
                status_code=409,
                details={"familyHeadId": new_family_head},
            ) from e

    @staticmethod
    def _mutable_fields(payload: BaseModel) -> Dict[str, Any]:
        return payload.model_dump(exclude=IMMUTABLE_FIELDS)

    async def _load(self, key: str) -> Dict[str, str]:
        with store_errors(f"read {key}"):
            return await self.redis.hgetall(key)

    # --- Create ---

    async def create_resident(self, fields: Union[ResidentCreate, Mapping[str, Any]]) -> Resident:
        """
        Register a resident.

        Raises:
            RecordValidationError: If a required field is missing or malformed.
            RecordConflictError: If `familyHeadId` names no existing family head.
            StoreError: If Redis fails.
        """
        payload = self._validate(ResidentCreate, fields)
        if payload.familyHeadId:
            await self._require_family_head(payload.familyHeadId)

        new_id = await self.ids.next_resident_id()
        resident = Resident(
            id=new_id,
            registrationDate=self.clock(),
            type=RecordType.RESIDENT.value,
            **self._mutable_fields(payload),
        )

        await self._write_resident(resident)

        logger.info("Created resident %s (family head: %s)", new_id, resident.familyHeadId or "-")
        return resident

    async def create_family_head(self, fields: Union[FamilyHeadCreate, Mapping[str, Any]]) -> FamilyHead:
        """
        Register a family head with an empty membership set.

        Raises:
            RecordValidationError: If a required field is missing or malformed.
            StoreError: If Redis fails.
        """
        payload = self._validate(FamilyHeadCreate, fields)

        new_id = await self.ids.next_family_head_id()
        family_head = FamilyHead(
            id=new_id,
            registrationDate=self.clock(),
            type=RecordType.FAMILY_HEAD.value,
            **self._mutable_fields(payload),
        )

        with store_errors(f"create family head {new_id}"):
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.hset(family_head_key(new_id), mapping=family_head.to_hash())
                # Redis has no empty sets: an absent key is the empty membership set.
                self.membership.queue_drop(pipe, new_id)
                await pipe.execute()

        logger.info("Created family head %s", new_id)
        return family_head

    # --- Read ---

    async def get_resident(self, resident_id: str) -> Resident:
        data = await self._load(resident_key(resident_id))
        if not data:
            raise RecordNotFoundError(RESIDENT_ENTITY, resident_id)
        return Resident.model_validate(data)

    async def get_family_head(self, family_head_id: str) -> FamilyHead:
        data = await self._load(family_head_key(family_head_id))
        if not data:
            raise RecordNotFoundError(FAMILY_HEAD_ENTITY, family_head_id)
        return FamilyHead.model_validate(data)

    async def get_by_id(self, record_id: str) -> PersonRecord:
        """Fetch a record of either type, resolving the type from the id prefix."""
        if record_id.startswith(f"{RESIDENT_PREFIX}-"):
            return await self.get_resident(record_id)
        if record_id.startswith(f"{FAMILY_HEAD_PREFIX}-"):
            return await self.get_family_head(record_id)
        raise RecordNotFoundError("Record", record_id)

    async def get_all(self, entity_type: RecordType) -> List[PersonRecord]:
        """
        Return every stored record of `entity_type` in store enumeration order.

        No ordering is guaranteed; callers that need one must sort explicitly.
        """
        if entity_type == RecordType.RESIDENT:
            prefix, model = RESIDENT_KEY_PREFIX, Resident
        else:
            prefix, model = FAMILY_HEAD_KEY_PREFIX, FamilyHead

        with store_errors(f"list {prefix} records"):
            keys = [key async for key in self.redis.scan_iter(match=f"{prefix}:*")]
            if not keys:
                return []
            async with self.redis.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.hgetall(key)
                results = await pipe.execute()

        # A key deleted between SCAN and HGETALL comes back empty.
        return [model.model_validate(data) for data in results if data]

    async def get_all_residents(self) -> List[Resident]:
        return await self.get_all(RecordType.RESIDENT)

    async def get_all_family_heads(self) -> List[FamilyHead]:
        return await self.get_all(RecordType.FAMILY_HEAD)

    async def get_family_members(self, family_head_id: str) -> List[Resident]:
        """
        Return the resident records in a family head's membership set.

        Raises:
            RecordNotFoundError: If the family head does not exist.
        """
        await self.get_family_head(family_head_id)
        member_ids = sorted(await self.membership.members(family_head_id))
        if not member_ids:
            return []

        with store_errors(f"read members of {family_head_id}"):
            async with self.redis.pipeline(transaction=False) as pipe:
                for member_id in member_ids:
                    pipe.hgetall(resident_key(member_id))
                results = await pipe.execute()

        members = []
        for member_id, data in zip(member_ids, results):
            if not data:
                logger.warning("Family %s lists missing resident %s", family_head_id, member_id)
                continue
            members.append(Resident.model_validate(data))
        return members

    # --- Update ---

    async def update_resident(self, resident_id: str, fields: Union[ResidentUpdate, Mapping[str, Any]]) -> Resident:
        """
        Replace a resident's mutable fields.

        When `familyHeadId` changes, the record write, the removal from the old
        membership set and the addition to the new one commit in one transaction.

        Raises:
            RecordNotFoundError: If the resident does not exist.
            RecordValidationError: If a required field is missing or malformed.
            RecordConflictError: If the new `familyHeadId` names no existing family head,
                or (409) if the resident or that family head changed during the write.
            StoreError: If Redis fails.
        """
        payload = self._validate(ResidentUpdate, fields)
        current = await self.get_resident(resident_id)

        old_family_head = current.familyHeadId
        new_family_head = payload.familyHeadId

        resident = Resident(
            id=current.id,
            registrationDate=current.registrationDate,
            type=RecordType.RESIDENT.value,
            **self._mutable_fields(payload),
        )
        await self._write_resident(resident, old_family_head=old_family_head, replace=True)

        if old_family_head != new_family_head:
            logger.info(
                "Moved resident %s from family %s to %s", resident_id, old_family_head or "-", new_family_head or "-"
            )
        else:
            logger.info("Updated resident %s", resident_id)
        return resident

    async def update_family_head(
        self, family_head_id: str, fields: Union[FamilyHeadUpdate, Mapping[str, Any]]
    ) -> FamilyHeadUpdateResult:
        """
        Replace a family head's mutable fields and cascade an address change to its members.

        Returns:
            FamilyHeadUpdateResult: The stored record and one outcome per member when the
            address changed (empty otherwise).

        Raises:
            RecordNotFoundError: If the family head does not exist or is deleted during
                the update.
            RecordValidationError: If a required field is missing or malformed.
            RecordConflictError: If the family head was modified during the update (409).
            StoreError: If the family head record itself could not be written.
        """
        payload = self._validate(FamilyHeadUpdate, fields)
        current = await self.get_family_head(family_head_id)

        family_head = FamilyHead(
            id=current.id,
            registrationDate=current.registrationDate,
            type=RecordType.FAMILY_HEAD.value,
            **self._mutable_fields(payload),
        )

        key = family_head_key(family_head_id)
        try:
            with store_errors(f"update family head {family_head_id}"):
                async with self.redis.pipeline(transaction=True) as pipe:
                    await pipe.watch(key)
                    if not await pipe.exists(key):
                        await pipe.unwatch()
                        raise RecordNotFoundError(FAMILY_HEAD_ENTITY, family_head_id)
                    pipe.multi()
                    pipe.delete(key)
                    pipe.hset(key, mapping=family_head.to_hash())
                    await pipe.execute()
        except WatchError as e:
            with store_errors(f"check family head {family_head_id}"):
                still_exists = await self.redis.exists(key)
            if not still_exists:
                raise RecordNotFoundError(FAMILY_HEAD_ENTITY, family_head_id) from e
            logger.warning("Update of family head %s aborted by a concurrent change", family_head_id)
            raise RecordConflictError(
                "Record changed while saving; retry the request", status_code=409
            ) from e
        logger.info("Updated family head %s", family_head_id)

        member_updates: List[MemberUpdateOutcome] = []
        if family_head.address != current.address:
            member_updates = await self._cascade_address(family_head_id, family_head.address)

        return FamilyHeadUpdateResult(family_head=family_head, member_updates=member_updates)

    async def _cascade_address(self, family_head_id: str, address: str) -> List[MemberUpdateOutcome]:
        member_ids = sorted(await self.membership.members(family_head_id))
        outcomes = [await self._update_member_address(family_head_id, member_id, address) for member_id in member_ids]

        failed = [outcome.residentId for outcome in outcomes if not outcome.updated]
        if failed:
            logger.warning(
                "Address cascade for family %s left %d of %d members stale: %s",
                family_head_id,
                len(failed),
                len(outcomes),
                ", ".join(failed),
            )
        elif outcomes:
            logger.info("Propagated new address of family %s to %d members", family_head_id, len(outcomes))
        return outcomes

    async def _update_member_address(self, family_head_id: str, member_id: str, address: str) -> MemberUpdateOutcome:
        key = resident_key(member_id)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                current_family_head = await pipe.hget(key, "familyHeadId")
                if current_family_head is None:
                    await pipe.unwatch()
                    return MemberUpdateOutcome(residentId=member_id, updated=False, error="resident not found")
                if current_family_head != family_head_id:
                    await pipe.unwatch()
                    return MemberUpdateOutcome(
                        residentId=member_id, updated=False, error="resident belongs to another family head"
                    )
                pipe.multi()
                pipe.hset(key, "address", address)
                await pipe.execute()
        except WatchError:
            logger.error("Resident %s changed during address cascade of family %s", member_id, family_head_id)
            return MemberUpdateOutcome(residentId=member_id, updated=False, error="resident modified concurrently")
        except RedisError as e:
            logger.error("Failed to propagate address of family %s to %s: %s", family_head_id, member_id, e)
            return MemberUpdateOutcome(residentId=member_id, updated=False, error=str(e))
        return MemberUpdateOutcome(residentId=member_id, updated=True)

    # --- Delete ---

    async def delete_resident(self, resident_id: str) -> Resident:
        """
        Delete a resident and remove it from its family's membership set.

        Raises:
            RecordNotFoundError: If the resident does not exist.
            StoreError: If Redis fails.
        """
        resident = await self.get_resident(resident_id)

        with store_errors(f"delete resident {resident_id}"):
            async with self.redis.pipeline(transaction=True) as pipe:
                if resident.familyHeadId:
                    self.membership.queue_remove(pipe, resident.familyHeadId, resident_id)
                pipe.delete(resident_key(resident_id))
                await pipe.execute()

        logger.info("Deleted resident %s", resident_id)
        return resident

    async def delete_family_head(self, family_head_id: str) -> FamilyHead:
        """
        Delete a family head and its (empty) membership set.

        Raises:
            RecordNotFoundError: If the family head does not exist.
            RecordConflictError: If the family head still has members, or gained one
                while the delete was in progress.
            StoreError: If Redis fails.
        """
        family_head = await self.get_family_head(family_head_id)
        members_key = family_members_key(family_head_id)

        try:
            with store_errors(f"delete family head {family_head_id}"):
                async with self.redis.pipeline(transaction=True) as pipe:
                    await pipe.watch(members_key)
                    member_count = await pipe.scard(members_key)
                    if member_count:
                        await pipe.unwatch()
                        logger.warning(
                            "Refused to delete family head %s with %d members", family_head_id, member_count
                        )
                        raise RecordConflictError(
                            "Cannot delete family head with existing members. "
                            "Please reassign or delete members first.",
                            status_code=409,
                            details={"memberCount": member_count},
                        )
                    pipe.multi()
                    pipe.delete(family_head_key(family_head_id))
                    self.membership.queue_drop(pipe, family_head_id)
                    await pipe.execute()
        except WatchError as e:
            raise RecordConflictError(
                "Family membership changed while deleting; retry the request", status_code=409
            ) from e

        logger.info("Deleted family head %s", family_head_id)
        return family_head
