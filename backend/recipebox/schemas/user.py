"""
RecipeBox Backend — User Request/Response Schemas
===================================================

What:  Pydantic models for the /api/users request bodies and the public
       user projection.
How:   Request models normalise input (strip whitespace, lower-case email)
       and reject blanks. Body errors raise RequestValidationError, which the
       handler in main.py renders as a 400 envelope.

UserResponse has no password field. Rows are validated through it before
they leave a handler, so a credential column can never reach the client
even if a statement selected it.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_PASSWORD_LENGTH = 6


def _clean_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _clean_email(value: str) -> str:
    value = _clean_required(value).lower()
    local, _, domain = value.partition("@")
    if not local or "." not in domain or " " in value:
        raise ValueError("must be a valid email address")
    return value


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _check_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"must be at least {MIN_PASSWORD_LENGTH} characters")
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    """Body of POST /api/users/register."""

    username: str = Field(max_length=50)
    email: str = Field(max_length=255)
    password: str
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _clean_required(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _clean_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: Optional[str]) -> Optional[str]:
        return _clean_optional(v)


class LoginRequest(BaseModel):
    """Body of POST /api/users/login."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _clean_required(v).lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be blank")
        return v


class ProfileUpdateRequest(BaseModel):
    """
    Body of PUT /api/users/profile.

    Only keys present in the body are applied (model_dump(exclude_unset=True)).
    first_name/last_name may be sent as null to clear them; username and
    email may not. Unknown keys such as `password` are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    username: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("must not be null")
        return _clean_required(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("must not be null")
        return _clean_email(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: Optional[str]) -> Optional[str]:
        return _clean_optional(v)


class PasswordUpdateRequest(BaseModel):
    """Body of PUT /api/users/password (camelCase keys, as clients send them)."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword")

    @field_validator("current_password")
    @classmethod
    def validate_current(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("new_password")
    @classmethod
    def validate_new(cls, v: str) -> str:
        return _check_password(v)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(BaseModel):
    """Public user projection returned by every /api/users route."""

    user_id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
