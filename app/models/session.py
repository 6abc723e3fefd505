"""Session and account models."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, EmailStr, field_validator

from app.utils.validation import validate_display_name, validate_email, validate_password


@dataclass
class Session:
    """An authenticated session issued at sign-in."""

    access_token: str
    user_id: str
    email: str
    full_name: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))

    def update_activity(self) -> None:
        """Update the last activity timestamp."""
        self.last_activity = datetime.now(UTC)


class UserAccount(BaseModel):
    """Public view of a registered user."""

    id: str
    email: str
    full_name: str
    created_at: datetime


class SessionResponse(BaseModel):
    """Response model for sign-in and session lookup."""

    access_token: str
    user: UserAccount


class SignInRequest(BaseModel):
    """Request model for signing in."""

    email: EmailStr
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: Any) -> Any:
        if isinstance(v, str):
            message = validate_email(v)
            if message:
                raise ValueError(message)
            return v.strip()
        return v

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        message = validate_password(v)
        if message:
            raise ValueError(message)
        return v


class SignUpRequest(SignInRequest):
    """Request model for creating an account with a display name."""

    full_name: str

    @field_validator("full_name")
    @classmethod
    def check_full_name(cls, v: str) -> str:
        message = validate_display_name(v)
        if message:
            raise ValueError(message)
        return v.strip()
