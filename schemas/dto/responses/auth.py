"""
Response DTOs for authentication endpoints.

UserPublic             — public projection of a user record
AuthTokenResponse      — POST /auth/login, /auth/verify-signup  (200)
RegisterResponse       — POST /auth/register  (201)
PasswordResetResponse  — forgot / verify-reset-otp / reset-password  (200)
ValidateTokenResponse  — GET /auth/validate-token  (200)
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.user import UserDoc


class UserPublic(BaseModel):
    """The only user fields ever returned to clients."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    username: str
    age: Optional[int] = None
    about: str = ""

    @classmethod
    def from_doc(cls, user: UserDoc) -> "UserPublic":
        return cls(
            id=str(user.id),
            name=user.name,
            email=user.email,
            username=user.username,
            age=user.age,
            about=user.about,
        )


class AuthTokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    token: str
    user: UserPublic


class RegisterResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    state: str
    email: str
    verification_sent: bool = Field(alias="verificationSent")


class PasswordResetResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    state: str
    email: str
    expires_in_seconds: Optional[int] = Field(
        default=None, alias="expiresInSeconds"
    )


class ValidateTokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    valid: bool = True
    user: UserPublic
