"""
Domain exceptions raised by the record services.

Routers never build error responses for these themselves; `main.py` registers
exception handlers that map each class to its HTTP status code.
"""

from typing import Any, Dict, List, Optional


class RegistryError(Exception):
    """Base class for all registry errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RecordValidationError(RegistryError):
    """A required field is missing or malformed. No state was changed."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, {"errors": errors or []})
        self.errors = errors or []


class RecordNotFoundError(RegistryError):
    """The referenced record does not exist. No state was changed."""

    status_code = 404

    def __init__(self, entity: str, record_id: str):
        super().__init__(f"{entity} not found", {"id": record_id})
        self.entity = entity
        self.record_id = record_id


class RecordConflictError(RegistryError):
    """
    The mutation would break referential integrity.

    Raised for a dangling `familyHeadId` (400) and for deleting a family head
    that still has members (409).
    """

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        if status_code is not None:
            self.status_code = status_code


class StoreError(RegistryError):
    """The key-value store failed. Reported as a generic server error and not retried."""

    status_code = 500


class AuthenticationError(RegistryError):
    """Bad credentials or an invalid/expired token."""

    status_code = 401
