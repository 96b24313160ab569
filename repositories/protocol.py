"""Persistence protocols — services depend on these, not on MongoDB."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from schemas.models.otp import OtpDoc, OtpPurpose, OtpStage
from schemas.models.user import UserDoc


class UserRepository(Protocol):
    async def find_by_id(self, user_id: str) -> Optional[UserDoc]: ...

    async def find_by_email(self, email: str) -> Optional[UserDoc]: ...

    async def find_by_username(self, username: str) -> Optional[UserDoc]: ...

    async def insert(self, user: UserDoc) -> UserDoc:
        """Persist *user*; raises ConflictError on a duplicate email/username."""
        ...

    async def increment_login_attempts(self, user_id: str) -> int:
        """Atomically add one failed attempt and return the new count."""
        ...

    async def lock_until(self, user_id: str, until: datetime) -> None: ...

    async def reset_login_attempts(
        self, user_id: str, *, login_at: Optional[datetime] = None
    ) -> None: ...

    async def mark_email_verified(self, email: str) -> Optional[UserDoc]: ...

    async def set_password_hash(
        self, user_id: str, password_hash: str, *, clear_lockout: bool = False
    ) -> None: ...


class OtpRepository(Protocol):
    async def replace(self, otp: OtpDoc) -> OtpDoc:
        """Store *otp* as the only record for its (email, purpose) pair."""
        ...

    async def find(self, email: str, purpose: OtpPurpose) -> Optional[OtpDoc]: ...

    async def increment_attempts(
        self,
        otp_id: str,
        *,
        below: int,
        stage: Optional[OtpStage] = None,
    ) -> Optional[OtpDoc]:
        """Add one attempt if the record still has fewer than *below*.

        Returns the updated record, or None when it is gone or exhausted.
        """
        ...

    async def delete(self, otp_id: str) -> bool:
        """Delete a record; True only for the caller that removed it."""
        ...
