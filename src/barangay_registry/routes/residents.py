"""
# Resident Routes

CRUD endpoints for residents. Every route requires a bearer token.

Errors are raised as domain exceptions by `RecordRepository` and rendered by the
handlers registered in `main.py`:

- `400` missing/invalid fields, or `familyHeadId` naming no existing family head
- `404` unknown resident id
- `500` store failure
"""

from typing import List

from fastapi import APIRouter, Depends, status

from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.models.auth_models import UserPublic
from barangay_registry.models.record_models import MessageResponse, Resident, ResidentCreate, ResidentUpdate
from barangay_registry.routes.auth.dependencies import get_current_user_dep
from barangay_registry.routes.dependencies import get_record_repository
from barangay_registry.services.record_repository import RecordRepository

logger = get_logger(prefix="[Resident Routes]")

router = APIRouter(prefix="/residents", tags=["Residents"], dependencies=[Depends(get_current_user_dep)])


@router.get("", response_model=List[Resident])
async def list_residents(repository: RecordRepository = Depends(get_record_repository)):
    """Every stored resident, in no particular order."""
    return await repository.get_all_residents()


@router.get("/{resident_id}", response_model=Resident)
async def get_resident(resident_id: str, repository: RecordRepository = Depends(get_record_repository)):
    return await repository.get_resident(resident_id)


@router.post("", response_model=Resident, status_code=status.HTTP_201_CREATED)
async def create_resident(
    request: ResidentCreate,
    repository: RecordRepository = Depends(get_record_repository),
    current_user: UserPublic = Depends(get_current_user_dep),
):
    """
    Register a resident.

    The id (`R-<year><seq>`) and `registrationDate` are assigned by the server. When
    `familyHeadId` is given the resident is added to that family's membership set in
    the same transaction as the record write.

    Raises:
        RecordValidationError (400): Missing or malformed fields.
        RecordConflictError (400): `familyHeadId` names no existing family head.
    """
    resident = await repository.create_resident(request)
    logger.info("Resident %s registered by %s", resident.id, current_user.username)
    return resident


@router.put("/{resident_id}", response_model=Resident)
async def update_resident(
    resident_id: str,
    request: ResidentUpdate,
    repository: RecordRepository = Depends(get_record_repository),
):
    """
    Replace a resident's fields.

    `id`, `type` and `registrationDate` are kept from the stored record even when the
    body carries other values. Changing `familyHeadId` moves the resident between
    membership sets.
    """
    return await repository.update_resident(resident_id, request)


@router.delete("/{resident_id}", response_model=MessageResponse)
async def delete_resident(
    resident_id: str,
    repository: RecordRepository = Depends(get_record_repository),
    current_user: UserPublic = Depends(get_current_user_dep),
):
    await repository.delete_resident(resident_id)
    logger.info("Resident %s deleted by %s", resident_id, current_user.username)
    return MessageResponse(message="Resident deleted successfully")
