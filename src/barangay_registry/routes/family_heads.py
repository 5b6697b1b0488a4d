"""
# Family Head Routes

CRUD endpoints for family heads plus the member listing. Every route requires a
bearer token.

- `PUT /familyHeads/{id}` rewrites the address of every member when the family
  head's address changes. The response carries one `memberAddressUpdates` entry
  per member so a partially applied cascade is visible to the caller.
- `DELETE /familyHeads/{id}` is refused with `409` while the family still has
  members.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.models.auth_models import UserPublic
from barangay_registry.models.record_models import (
    FamilyHead,
    FamilyHeadCreate,
    FamilyHeadUpdate,
    FamilyHeadUpdateResponse,
    MessageResponse,
    Resident,
)
from barangay_registry.routes.auth.dependencies import get_current_user_dep
from barangay_registry.routes.dependencies import get_record_repository
from barangay_registry.services.record_repository import RecordRepository

logger = get_logger(prefix="[Family Head Routes]")

router = APIRouter(prefix="/familyHeads", tags=["Family Heads"], dependencies=[Depends(get_current_user_dep)])


@router.get("", response_model=List[FamilyHead])
async def list_family_heads(repository: RecordRepository = Depends(get_record_repository)):
    return await repository.get_all_family_heads()


@router.get("/{family_head_id}", response_model=FamilyHead)
async def get_family_head(family_head_id: str, repository: RecordRepository = Depends(get_record_repository)):
    return await repository.get_family_head(family_head_id)


@router.get("/{family_head_id}/members", response_model=List[Resident])
async def get_family_members(family_head_id: str, repository: RecordRepository = Depends(get_record_repository)):
    """Residents in the family's membership set, ordered by id. `404` if the family head is unknown."""
    return await repository.get_family_members(family_head_id)


@router.post("", response_model=FamilyHead, status_code=status.HTTP_201_CREATED)
async def create_family_head(
    request: FamilyHeadCreate,
    repository: RecordRepository = Depends(get_record_repository),
    current_user: UserPublic = Depends(get_current_user_dep),
):
    family_head = await repository.create_family_head(request)
    logger.info("Family head %s registered by %s", family_head.id, current_user.username)
    return family_head


@router.put("/{family_head_id}", response_model=FamilyHeadUpdateResponse)
async def update_family_head(
    family_head_id: str,
    request: FamilyHeadUpdate,
    repository: RecordRepository = Depends(get_record_repository),
):
    """
    Replace a family head's fields and cascade an address change to its members.

    Returns:
        FamilyHeadUpdateResponse: The stored family head plus `memberAddressUpdates`,
        one `{residentId, updated, error}` entry per member. Empty when the address
        did not change.
    """
    result = await repository.update_family_head(family_head_id, request)
    if result.failed_members:
        logger.warning(
            "Family head %s updated; address not propagated to %s", family_head_id, ", ".join(result.failed_members)
        )
    return FamilyHeadUpdateResponse(
        **result.family_head.model_dump(),
        memberAddressUpdates=result.member_updates,
    )


@router.delete("/{family_head_id}", response_model=MessageResponse)
async def delete_family_head(
    family_head_id: str,
    repository: RecordRepository = Depends(get_record_repository),
    current_user: UserPublic = Depends(get_current_user_dep),
):
    """
    Delete a family head with no members.

    Raises:
        RecordNotFoundError (404): Unknown family head.
        RecordConflictError (409): The family still has members.
    """
    await repository.delete_family_head(family_head_id)
    logger.info("Family head %s deleted by %s", family_head_id, current_user.username)
    return MessageResponse(message="Family head deleted successfully")
