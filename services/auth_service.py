"""
AuthService — the account-security flows.

Login, registration + signup verification, OTP resend, the three-step
password reset (forgot → verify code → reset), and the authenticated
password operations. Every request-scoped value (client IP, current user id)
is passed in explicitly; the only shared state is the rate limiter and the
repositories.

Failures are raised as AppError subclasses whose ``code`` names the terminal
state the flow ended in (``invalid_credentials``, ``conflict_unverified``,
``otp_expired`` ...).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from errors import (
    AuthenticationError,
    ConflictError,
    EmailDeliveryError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    TokenError,
    ValidationError,
)
from infrastructure.email.protocol import EmailNotifier
from repositories.protocol import UserRepository
from schemas.models.otp import OtpPurpose
from schemas.models.user import AuthMethod, UserDoc
from services.credential_service import AuthOutcome, CredentialVerifier
from services.limits import Limits
from services.otp_service import OtpFailure, OtpStore, VerifyResult
from services.rate_limiter import RateLimiterBackend, RateLimitPolicy
from services.token_service import TokenIssuer
from shared import validators
from shared.crypto import hash_password, verify_password
from shared.generators import username_candidates
from shared.logging import get_logger

log = get_logger(__name__)


class LoginState(str, Enum):
    ISSUED = "issued"
    LOCKED = "locked"
    REQUIRES_VERIFICATION = "requires_verification"
    INVALID_CREDENTIALS = "invalid_credentials"
    NO_SUCH_ACCOUNT = "no_such_account"


class SignupState(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    CONFLICT_VERIFIED = "conflict_verified"
    CONFLICT_UNVERIFIED = "conflict_unverified"
    VALIDATION_ERROR = "validation_error"


class PasswordResetState(str, Enum):
    CODE_SENT = "code_sent"
    CODE_VERIFIED = "code_verified"
    RESET = "reset"
    FAILED = "failed"


@dataclass(frozen=True)
class AuthSession:
    token: str
    user: UserDoc


@dataclass(frozen=True)
class RegistrationProfile:
    first_name: Optional[str]
    last_name: Optional[str]
    username: Optional[str]
    email: Optional[str]
    password: Optional[str]
    age: Any


@dataclass(frozen=True)
class RegistrationResult:
    state: SignupState
    email: str
    verification_sent: bool


@dataclass(frozen=True)
class PasswordResetResult:
    state: PasswordResetState
    email: str


_OTP_FAILURE_MESSAGES = {
    OtpFailure.EXPIRED: "Invalid or expired OTP. Please request a new one",
    OtpFailure.MISMATCH: "Invalid OTP. Please check the code and try again",
    OtpFailure.EXHAUSTED: "Too many failed attempts. Please request a new OTP",
    OtpFailure.NOT_VERIFIED: "Please verify the OTP before resetting your password",
}

_PASSWORD_COMPOSITION_MESSAGE = (
    "Password must contain at least one uppercase letter, one lowercase letter, and one number"
)


def _require_valid(message: Optional[str], field: Optional[str] = None) -> None:
    if message is not None:
        raise ValidationError(message, field=field)


def _otp_error(result: VerifyResult, state: Optional[PasswordResetState] = None) -> ValidationError:
    data = {"state": state.value} if state is not None else None
    return ValidationError(
        _OTP_FAILURE_MESSAGES[result.reason], code=f"otp_{result.reason.value}", data=data
    )


def _check_password_policy(password: Optional[str], label: str = "Password") -> None:
    _require_valid(validators.validate_password_length(password, label), field="password")
    missing = validators.password_policy_violations(password)
    if missing:
        raise ValidationError(_PASSWORD_COMPOSITION_MESSAGE, field="password", errors=missing)


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        otps: OtpStore,
        verifier: CredentialVerifier,
        tokens: TokenIssuer,
        limiter: RateLimiterBackend,
        notifier: EmailNotifier,
    ) -> None:
        self._users = users
        self._otps = otps
        self._verifier = verifier
        self._tokens = tokens
        self._limiter = limiter
        self._notifier = notifier

    # ── Login ────────────────────────────────────────────────────────────────

    async def login(self, identifier: Optional[str], password: Optional[str], ip_address: str) -> AuthSession:
        if not identifier or not identifier.strip():
            raise ValidationError("Email or username is required", field="identifier")
        if not password or not password.strip():
            raise ValidationError("Password is required", field="password")

        result = await self._verifier.authenticate(identifier, password)

        if result.outcome is AuthOutcome.SUCCESS:
            return AuthSession(token=self._tokens.issue(result.user), user=result.user)

        if result.outcome is AuthOutcome.NO_SUCH_ACCOUNT:
            raise AuthenticationError(result.message, code=LoginState.NO_SUCH_ACCOUNT.value)

        if result.outcome in (AuthOutcome.LOCKED, AuthOutcome.LOCKED_NOW):
            raise RateLimitError(
                result.message,
                code=LoginState.LOCKED.value,
                retry_after=(result.minutes_remaining or 0) * 60,
                data={"minutesRemaining": result.minutes_remaining},
            )

        if result.outcome is AuthOutcome.REQUIRES_VERIFICATION:
            email = result.user.email
            self._consume(Limits.OTP_SEND, email, "Too many OTP requests. Please try again later")
            sent = await self._send_code_best_effort(email, OtpPurpose.SIGNUP, ip_address)
            raise ForbiddenError(
                result.message,
                code=LoginState.REQUIRES_VERIFICATION.value,
                data={"requiresVerification": True, "email": email, "verificationSent": sent},
            )

        raise AuthenticationError(result.message, code=LoginState.INVALID_CREDENTIALS.value)

    # ── Registration ─────────────────────────────────────────────────────────

    async def register(self, profile: RegistrationProfile, ip_address: str) -> RegistrationResult:
        problems = [
            message
            for message in (
                validators.validate_name(profile.first_name, profile.last_name),
                validators.validate_username(profile.username),
                validators.validate_email(profile.email),
                validators.validate_password_length(profile.password),
                validators.validate_age(profile.age),
            )
            if message is not None
        ]
        if problems:
            raise ValidationError(
                problems[0], code=SignupState.VALIDATION_ERROR.value, errors=problems
            )

        email = validators.normalize_email(profile.email)
        username = profile.username.strip().lower()

        existing = await self._users.find_by_email(email)
        if existing is not None:
            log.warning("registration_failed", reason="email_exists", verified=existing.is_email_verified)
            if not existing.is_email_verified:
                raise ConflictError(
                    "User already exists but email not verified. "
                    "Please log in to resume verification",
                    code=SignupState.CONFLICT_UNVERIFIED.value,
                    field="email",
                    data={"requiresLogin": True},
                )
            raise ConflictError(
                "An account with this email already exists. Please login instead",
                code=SignupState.CONFLICT_VERIFIED.value,
                field="email",
            )

        if await self._users.find_by_username(username) is not None:
            log.warning("registration_failed", reason="username_taken")
            raise ConflictError(
                "This username is already taken. Please choose a different username",
                code="username_taken",
                field="username",
            )

        self._consume(Limits.OTP_SEND, email, "Too many OTP requests. Please try again later")

        user = await self._users.insert(
            UserDoc(
                name=f"{profile.first_name.strip()} {profile.last_name.strip()}",
                username=username,
                email=email,
                password_hash=hash_password(profile.password),
                auth_method=AuthMethod.LOCAL,
                is_email_verified=False,
                age=validators.parse_age(profile.age),
            )
        )
        log.info("user_registered", user_id=str(user.id), auth_method="password")

        sent = await self._send_code_best_effort(email, OtpPurpose.SIGNUP, ip_address)
        return RegistrationResult(
            state=SignupState.PENDING_VERIFICATION, email=email, verification_sent=sent
        )

    async def verify_signup(self, email: Optional[str], code: Optional[str]) -> AuthSession:
        _require_valid(validators.validate_email(email), field="email")
        _require_valid(validators.validate_otp_format(code), field="otp")
        email = validators.normalize_email(email)

        result = await self._otps.verify(email, code.strip(), OtpPurpose.SIGNUP)
        if not result.ok:
            raise _otp_error(result)

        user = await self._users.mark_email_verified(email)
        if user is None:
            raise NotFoundError("User not found")
        log.info("email_verified_success", user_id=str(user.id))
        return AuthSession(token=self._tokens.issue(user), user=user)

    async def resend_otp(self, email: Optional[str], purpose: Optional[str], ip_address: str) -> None:
        _require_valid(validators.validate_email(email), field="email")
        if not purpose or not purpose.strip():
            raise ValidationError("OTP type is required", field="type")
        try:
            otp_purpose = OtpPurpose(purpose.strip())
        except ValueError:
            raise ValidationError(
                'Invalid OTP type. Must be either "signup" or "reset"', field="type"
            ) from None
        email = validators.normalize_email(email)

        self._consume(
            Limits.OTP_SEND,
            f"{email}:{otp_purpose.value}",
            "Too many OTP requests. Please try again later",
        )
        await self._send_code(email, otp_purpose, ip_address)

    # ── Password reset: forgot → verify → reset ──────────────────────────────

    async def forgot_password(self, email: Optional[str], ip_address: str) -> PasswordResetResult:
        _require_valid(validators.validate_email(email), field="email")
        email = validators.normalize_email(email)

        user = await self._users.find_by_email(email)
        if user is None:
            raise NotFoundError("No account found with this email address", field="email")
        if not user.is_email_verified:
            raise ValidationError(
                "Please verify your email first before resetting password",
                code="email_not_verified",
                field="email",
            )

        self._consume(
            Limits.FORGOT_PASSWORD,
            email,
            "Too many password reset requests. Please try again later",
        )
        await self._send_code(email, OtpPurpose.RESET, ip_address)
        log.info("password_reset_requested", user_id=str(user.id))
        return PasswordResetResult(state=PasswordResetState.CODE_SENT, email=email)

    async def verify_reset_otp(self, email: Optional[str], code: Optional[str]) -> PasswordResetResult:
        _require_valid(validators.validate_email(email), field="email")
        _require_valid(validators.validate_otp_format(code), field="otp")
        email = validators.normalize_email(email)

        result = await self._otps.verify(email, code.strip(), OtpPurpose.RESET)
        if not result.ok:
            raise _otp_error(result, PasswordResetState.FAILED)
        return PasswordResetResult(state=PasswordResetState.CODE_VERIFIED, email=email)

    async def reset_password(
        self, email: Optional[str], code: Optional[str], new_password: Optional[str]
    ) -> PasswordResetResult:
        _require_valid(validators.validate_email(email), field="email")
        _require_valid(validators.validate_otp_format(code), field="otp")
        _check_password_policy(new_password, label="New password")
        email = validators.normalize_email(email)

        # From here on the reset code is spent, whatever happens next
        result = await self._otps.consume_for_reset(email, code.strip())
        if not result.ok:
            if result.reason is OtpFailure.EXHAUSTED:
                raise ValidationError(
                    "OTP has been used too many times. Please request a new one",
                    code="otp_exhausted",
                    data={"state": PasswordResetState.FAILED.value},
                )
            raise _otp_error(result, PasswordResetState.FAILED)

        user = await self._users.find_by_email(email)
        if user is None:
            raise NotFoundError("User not found")

        if verify_password(new_password, user.password_hash):
            raise ValidationError(
                "New password must differ from your current password",
                code="password_unchanged",
                field="newPassword",
                data={"state": PasswordResetState.FAILED.value},
            )

        await self._users.set_password_hash(
            str(user.id), hash_password(new_password), clear_lockout=True
        )
        log.info("password_reset_success", user_id=str(user.id))
        return PasswordResetResult(state=PasswordResetState.RESET, email=email)

    # ── Authenticated password operations ────────────────────────────────────

    async def change_password(
        self, user_id: str, current_password: Optional[str], new_password: Optional[str]
    ) -> None:
        if not current_password or not current_password.strip():
            raise ValidationError("Current password is required", field="currentPassword")
        _check_password_policy(new_password, label="New password")
        if current_password == new_password:
            raise ValidationError(
                "New password must be different from current password",
                code="password_unchanged",
                field="newPassword",
            )

        user = await self._get_user(user_id)
        if not verify_password(current_password, user.password_hash):
            log.warning("password_change_failed", user_id=user_id, reason="invalid_password")
            raise AuthenticationError(
                "Current password is incorrect", code=LoginState.INVALID_CREDENTIALS.value
            )

        await self._users.set_password_hash(user_id, hash_password(new_password))
        log.info("password_changed", user_id=user_id)

    async def set_password(self, user_id: str, new_password: Optional[str]) -> None:
        """Add a local password, typically to a federated account."""
        _check_password_policy(new_password, label="New password")
        await self._get_user(user_id)
        await self._users.set_password_hash(user_id, hash_password(new_password))
        log.info("password_set", user_id=user_id)

    async def verify_password(self, user_id: str, password: Optional[str]) -> None:
        if not password or not password.strip():
            raise ValidationError("Password is required", field="password")
        user = await self._get_user(user_id)
        if not verify_password(password, user.password_hash):
            raise AuthenticationError(
                "Incorrect password", code=LoginState.INVALID_CREDENTIALS.value
            )

    # ── Federated sign-in and bearer tokens ──────────────────────────────────

    async def federated_login(self, email: str, display_name: Optional[str] = None) -> AuthSession:
        """Resolve a provider-verified email to an account and issue a token."""
        email = validators.normalize_email(email)
        user = await self._users.find_by_email(email)
        if user is None:
            username = None
            for candidate in username_candidates(email):
                if await self._users.find_by_username(candidate) is None:
                    username = candidate
                    break
            user = await self._users.insert(
                UserDoc(
                    name=(display_name or email.split("@", 1)[0]).strip(),
                    username=username,
                    email=email,
                    auth_method=AuthMethod.GOOGLE,
                    is_email_verified=True,
                )
            )
            log.info("user_registered", user_id=str(user.id), auth_method="google")
        return AuthSession(token=self._tokens.issue(user), user=user)

    async def resolve_bearer(self, token: Optional[str]) -> UserDoc:
        if not token:
            raise TokenError("Access token required")
        claims = self._tokens.verify(token)
        user = await self._users.find_by_id(claims.subject_id)
        if user is None:
            raise TokenError("User not found", code="user_not_found")
        if not user.is_email_verified:
            raise ForbiddenError("Account not verified", code="requires_verification")
        return user

    # ── Helpers ──────────────────────────────────────────────────────────────

    async def _get_user(self, user_id: str) -> UserDoc:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _consume(self, policy: RateLimitPolicy, key: str, message: str) -> None:
        result = self._limiter.consume(policy, key)
        if not result.allowed:
            raise RateLimitError(message, retry_after=result.retry_after_seconds)

    async def _send_code(self, email: str, purpose: OtpPurpose, ip_address: str) -> None:
        self._consume(
            Limits.OTP_DELIVERY,
            f"{email}:{purpose.value}",
            "Too many OTP requests. Please wait before trying again.",
        )
        code = await self._otps.issue(email, purpose, ip_address)
        await self._notifier.send_otp(email, code, purpose, ip_address)

    async def _send_code_best_effort(self, email: str, purpose: OtpPurpose, ip_address: str) -> bool:
        """Issue and deliver a code after a state change that must stand."""
        try:
            await self._send_code(email, purpose, ip_address)
        except (EmailDeliveryError, RateLimitError) as e:
            log.error(
                "verification_email_failed",
                purpose=purpose.value,
                error=e.message,
                error_type=type(e).__name__,
            )
            return False
        return True
