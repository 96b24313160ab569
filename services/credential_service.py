"""
Credential verification with login-attempt lockout.

authenticate() resolves an identifier (email or username), enforces an
active lockout, and compares the password. Repeated failures on a verified
account lock it; a successful login or a naturally expired lockout resets the
counters.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional

from repositories.protocol import UserRepository
from schemas.models.user import UserDoc
from shared.crypto import verify_password
from shared.datetime_utils import Clock, ensure_aware, utcnow
from shared.logging import get_logger
from shared.validators import is_email

log = get_logger(__name__)

MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_SECONDS = 30 * 60


class AuthOutcome(str, Enum):
    SUCCESS = "success"
    NO_SUCH_ACCOUNT = "no_such_account"
    LOCKED = "locked"
    LOCKED_NOW = "locked_now"
    INVALID_CREDENTIALS = "invalid_credentials"
    REQUIRES_VERIFICATION = "requires_verification"


@dataclass(frozen=True)
class AuthResult:
    outcome: AuthOutcome
    message: str
    user: Optional[UserDoc] = None
    minutes_remaining: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome is AuthOutcome.SUCCESS


class CredentialVerifier:
    def __init__(
        self,
        users: UserRepository,
        *,
        max_attempts: int = MAX_LOGIN_ATTEMPTS,
        lockout_seconds: int = LOCKOUT_SECONDS,
        clock: Clock = utcnow,
    ) -> None:
        self._users = users
        self._max_attempts = max_attempts
        self._lockout = timedelta(seconds=lockout_seconds)
        self._clock = clock

    async def authenticate(self, identifier: str, password: str) -> AuthResult:
        identifier = identifier.strip()
        by_email = is_email(identifier)
        if by_email:
            user = await self._users.find_by_email(identifier.lower())
        else:
            user = await self._users.find_by_username(identifier.lower())

        if user is None:
            # Says which field was searched, never anything about the password
            kind = "email" if by_email else "username"
            log.warning("login_failed", reason="no_such_account", identifier_kind=kind)
            return AuthResult(
                AuthOutcome.NO_SUCH_ACCOUNT,
                f"No account found with this {kind}. Please check and try again.",
            )

        user_id = str(user.id)
        now = self._clock()
        block_expires = ensure_aware(user.block_expires)
        if block_expires is not None:
            if block_expires > now:
                remaining_ms = (block_expires - now).total_seconds() * 1000
                minutes = math.ceil(remaining_ms / 60000)
                log.warning("login_failed", reason="locked", user_id=user_id)
                return AuthResult(
                    AuthOutcome.LOCKED,
                    f"Account temporarily locked. Try again after {minutes} minutes",
                    minutes_remaining=minutes,
                )
            # Lockout served: the account starts again with a clean slate
            await self._users.reset_login_attempts(user_id)
            user = user.model_copy(update={"login_attempts": 0, "block_expires": None})

        if not user.has_password:
            log.warning("login_failed", reason="no_local_password", user_id=user_id)
            return AuthResult(
                AuthOutcome.INVALID_CREDENTIALS,
                "This account uses Google sign-in. Log in with Google or set a password first.",
            )

        password_ok = verify_password(password, user.password_hash)

        if not user.is_email_verified:
            # Checked before disclosing verification status
            if not password_ok:
                log.warning("login_failed", reason="invalid_password", user_id=user_id)
                return AuthResult(AuthOutcome.INVALID_CREDENTIALS, "Invalid credentials")
            log.info("login_requires_verification", user_id=user_id)
            return AuthResult(
                AuthOutcome.REQUIRES_VERIFICATION,
                "Account not verified. Please verify your email before logging in",
                user=user,
            )

        if not password_ok:
            attempts = await self._users.increment_login_attempts(user_id)
            if attempts >= self._max_attempts:
                await self._users.lock_until(user_id, now + self._lockout)
                log.warning("account_locked", user_id=user_id, attempts=attempts)
                minutes = int(self._lockout.total_seconds() // 60)
                return AuthResult(
                    AuthOutcome.LOCKED_NOW,
                    f"Too many failed login attempts. Account locked for {minutes} minutes",
                    minutes_remaining=minutes,
                )
            log.warning(
                "login_failed", reason="invalid_password", user_id=user_id, attempts=attempts
            )
            return AuthResult(
                AuthOutcome.INVALID_CREDENTIALS, "Incorrect password. Please try again."
            )

        await self._users.reset_login_attempts(user_id, login_at=now)
        log.info("login_success", user_id=user_id, auth_method="password")
        return AuthResult(
            AuthOutcome.SUCCESS,
            "Login successful",
            user=user.model_copy(
                update={"login_attempts": 0, "block_expires": None, "last_login_at": now}
            ),
        )
