"""
User document model.

Maps to the `users` MongoDB collection.

Two creation paths produce slightly different shapes:
- Local registration: password_hash set, is_email_verified starts False
- Federated (Google) sign-in: no password_hash, is_email_verified True

login_attempts / block_expires drive the login lockout and are never part of
the public projection.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel


class AuthMethod(str, Enum):
    LOCAL = "local"
    GOOGLE = "google"


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    name: str
    username: str
    email: str
    password_hash: Optional[str] = None
    auth_method: AuthMethod = AuthMethod.LOCAL
    is_email_verified: bool = False
    login_attempts: int = Field(default=0, ge=0)
    block_expires: Optional[datetime] = None
    age: int = 18
    about: str = ""
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)
