"""
# Authentication Models

Request and response models for the staff login flow.

The registry has a single role, `admin`. Tokens carry `{username, name, role}`.
"""

from pydantic import BaseModel, Field, field_validator

# bcrypt only reads the first 72 bytes and newer releases reject anything longer.
MAX_PASSWORD_BYTES = 72


class LoginRequest(BaseModel):
    """Credentials posted to `/auth/login`."""

    username: str = Field(..., min_length=1, description="Username")
    password: str = Field(..., min_length=1, description="Password")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Username is required")
        return v


class UserPublic(BaseModel):
    """A staff account without its password hash."""

    username: str
    name: str = ""
    role: str = ""


class LoginResponse(BaseModel):
    """Successful login: a bearer token and the account it belongs to."""

    token: str
    user: UserPublic


class ChangePasswordRequest(BaseModel):
    """
    Request model for changing the current user's password.

    **Validation:**
    *   **newPassword**: at least 6 characters and at most 72 bytes of UTF-8.
    """

    currentPassword: str = Field(..., min_length=1, description="Current password")
    newPassword: str = Field(..., min_length=6, description="New password, at least 6 characters")

    @field_validator("newPassword")
    @classmethod
    def validate_new_password_bytes(cls, v):
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v
