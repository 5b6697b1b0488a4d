"""
Membership index: family head id -> set of resident ids.

The index mirrors the `familyHeadId` field of every resident. Set semantics make
`add` and `remove` idempotent, so retried calls never create duplicates or fail on
an already-removed member. The `queue_*` variants append the same commands to a
MULTI/EXEC pipeline so the repository can commit them together with a record write.
"""

from typing import Set

import redis.asyncio as aioredis
from redis.asyncio.client import Pipeline
from redis.exceptions import RedisError

from barangay_registry.exceptions import StoreError
from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.managers.redis_manager import family_members_key

logger = get_logger(prefix="[MembershipIndex]")


class MembershipIndex:
    """Secondary index over `Resident.familyHeadId`."""

    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    async def add(self, family_head_id: str, resident_id: str) -> None:
        try:
            await self.redis.sadd(family_members_key(family_head_id), resident_id)
        except RedisError as e:
            raise StoreError(f"Could not add {resident_id} to family {family_head_id}") from e
        logger.debug("Added %s to family %s", resident_id, family_head_id)

    async def remove(self, family_head_id: str, resident_id: str) -> None:
        try:
            await self.redis.srem(family_members_key(family_head_id), resident_id)
        except RedisError as e:
            raise StoreError(f"Could not remove {resident_id} from family {family_head_id}") from e
        logger.debug("Removed %s from family %s", resident_id, family_head_id)

    async def members(self, family_head_id: str) -> Set[str]:
        try:
            return set(await self.redis.smembers(family_members_key(family_head_id)))
        except RedisError as e:
            raise StoreError(f"Could not read members of family {family_head_id}") from e

    async def is_empty(self, family_head_id: str) -> bool:
        try:
            return await self.redis.scard(family_members_key(family_head_id)) == 0
        except RedisError as e:
            raise StoreError(f"Could not count members of family {family_head_id}") from e

    async def drop(self, family_head_id: str) -> None:
        """Delete the whole set. Only used when the family head itself is deleted."""
        try:
            await self.redis.delete(family_members_key(family_head_id))
        except RedisError as e:
            raise StoreError(f"Could not drop members of family {family_head_id}") from e
        logger.debug("Dropped membership set of family %s", family_head_id)

    # Pipeline variants
    @staticmethod
    def queue_add(pipe: Pipeline, family_head_id: str, resident_id: str) -> None:
        pipe.sadd(family_members_key(family_head_id), resident_id)

    @staticmethod
    def queue_remove(pipe: Pipeline, family_head_id: str, resident_id: str) -> None:
        pipe.srem(family_members_key(family_head_id), resident_id)

    @staticmethod
    def queue_drop(pipe: Pipeline, family_head_id: str) -> None:
        """Queue `drop` onto a pipeline."""
        pipe.delete(family_members_key(family_head_id))
