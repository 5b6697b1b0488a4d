"""
# Record Models

This module defines the **data structures** for residents and family heads, both the
request payloads accepted by the API and the typed records read back from Redis.

## Domain Overview

- **Resident**: a registered person, optionally grouped under a family head through
  `familyHeadId`.
- **Family Head**: the representative of a household. Owns a membership set of
  resident ids (`familyMembers:<id>`).

## Key Models

### 1. Request Models
- `ResidentCreate` / `ResidentUpdate`
- `FamilyHeadCreate` / `FamilyHeadUpdate`

Request models forbid unknown fields. Update models accept `id`, `type` and
`registrationDate` so clients may send a full record back, but those values are
ignored: they are carried over from the stored record.

### 2. Records
- `Resident` / `FamilyHead`: typed views over the Redis hashes. Blank or malformed
  dates read back as `None` so one damaged hash cannot break a listing.

### 3. Address Cascade
- `MemberUpdateOutcome`: the per-member result of propagating a family head's new
  address.

## Usage Example

```python
payload = ResidentCreate(
    firstName="Maria",
    lastName="Dela Cruz",
    gender="Female",
    birthDate="2010-05-14",
    address="123 Main St",
    familyHeadId="F-2024001",
)
```
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class RecordType(str, Enum):
    """Value of the `type` field stored on every record."""

    RESIDENT = "Resident"
    FAMILY_HEAD = "Family Head"


# Request Models
class PersonFields(BaseModel):
    """Fields shared by residents and family heads."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    firstName: str = Field(..., min_length=1, description="First name")
    lastName: str = Field(..., min_length=1, description="Last name")
    gender: str = Field(..., min_length=1, description="Gender")
    birthDate: date = Field(..., description="Birth date (YYYY-MM-DD)")
    address: str = Field(..., min_length=1, description="Home address")
    contactNumber: Optional[str] = Field(None, description="Contact number")

    @field_validator("contactNumber")
    @classmethod
    def blank_contact_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class ResidentCreate(PersonFields):
    """
    Request model for registering a resident.

    **Validation:**
    *   **familyHeadId**: Optional. Blank values mean "no family head". Existence of the
        referenced family head is checked by the repository, not here.
    """

    familyHeadId: Optional[str] = Field(None, description="Family head this resident belongs to")

    @field_validator("familyHeadId")
    @classmethod
    def blank_family_head_to_none(cls, v):
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class ResidentUpdate(ResidentCreate):
    """Request model for updating a resident. Immutable fields are accepted and ignored."""

    id: Optional[str] = None
    type: Optional[str] = None
    registrationDate: Optional[str] = None


class FamilyHeadCreate(PersonFields):
    """Request model for registering a family head."""


class FamilyHeadUpdate(FamilyHeadCreate):
    """Request model for updating a family head. Immutable fields are accepted and ignored."""

    id: Optional[str] = None
    type: Optional[str] = None
    registrationDate: Optional[str] = None


# Records
class PersonRecord(BaseModel):
    """Typed view over a stored person hash."""

    id: str
    firstName: str = ""
    lastName: str = ""
    gender: str = ""
    birthDate: Optional[date] = None
    address: str = ""
    contactNumber: str = ""
    registrationDate: Optional[datetime] = None

    @field_validator("birthDate", "registrationDate", mode="wrap")
    @classmethod
    def tolerate_malformed_dates(cls, v, handler):
        if v is None or v == "":
            return None
        try:
            return handler(v)
        except ValidationError:
            return None

    @field_validator("contactNumber", mode="before")
    @classmethod
    def none_contact_to_blank(cls, v):
        return v or ""

    @property
    def full_name(self) -> str:
        return f"{self.firstName} {self.lastName}"

    def to_hash(self) -> Dict[str, str]:
        """Flatten the record into the string mapping stored in Redis."""
        data = self.model_dump()
        mapping: Dict[str, str] = {}
        for key, value in data.items():
            if value is None:
                mapping[key] = ""
            elif isinstance(value, (date, datetime)):
                mapping[key] = value.isoformat()
            else:
                mapping[key] = str(value)
        return mapping


class Resident(PersonRecord):
    """A stored resident."""

    familyHeadId: Optional[str] = None
    type: str = RecordType.RESIDENT.value

    @field_validator("familyHeadId", mode="before")
    @classmethod
    def blank_family_head_to_none(cls, v):
        return v or None


class FamilyHead(PersonRecord):
    """A stored family head."""

    type: str = RecordType.FAMILY_HEAD.value


# Address Cascade
class MemberUpdateOutcome(BaseModel):
    """Result of rewriting one member's address after the family head moved."""

    residentId: str
    updated: bool
    error: Optional[str] = None


class FamilyHeadUpdateResult(BaseModel):
    """Outcome of `update_family_head`: the stored record plus the per-member cascade report."""

    family_head: FamilyHead
    member_updates: List[MemberUpdateOutcome] = Field(default_factory=list)

    @property
    def failed_members(self) -> List[str]:
        return [outcome.residentId for outcome in self.member_updates if not outcome.updated]


# Response Models
class FamilyHeadUpdateResponse(FamilyHead):
    """Response for `PUT /familyHeads/{id}`."""

    memberAddressUpdates: List[MemberUpdateOutcome] = Field(default_factory=list)


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str


def validation_errors(exc: Union[ValidationError, RequestValidationError]) -> List[Dict[str, Any]]:
    """Render a pydantic or request-body validation error as `{field, message}` pairs."""
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(location), "message": error.get("msg", "Invalid value")})
    return errors
