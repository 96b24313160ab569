"""
One-time passcode lifecycle: issue, verify, and the final reset consumption.

A record is live only while it is younger than the OTP TTL and has been
checked fewer than the maximum number of times. Dead records are deleted the
next time anyone touches them; the TTL index sweeps up the rest.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional

from repositories.protocol import OtpRepository
from schemas.models.otp import OtpDoc, OtpPurpose, OtpStage
from shared.crypto import code_matches, hash_code
from shared.datetime_utils import Clock, ensure_aware, utcnow
from shared.generators import generate_otp_code
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)

OTP_TTL_SECONDS = 300
OTP_MAX_ATTEMPTS = 3


class OtpFailure(str, Enum):
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"
    MISMATCH = "mismatch"
    NOT_VERIFIED = "not_verified"


@dataclass(frozen=True)
class VerifyResult:
    ok: bool
    reason: Optional[OtpFailure] = None

    def __bool__(self) -> bool:
        return self.ok


_OK = VerifyResult(ok=True)


class OtpStore:
    def __init__(
        self,
        repository: OtpRepository,
        *,
        ttl_seconds: int = OTP_TTL_SECONDS,
        max_attempts: int = OTP_MAX_ATTEMPTS,
        code_length: int = 6,
        clock: Clock = utcnow,
    ) -> None:
        self._repo = repository
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_attempts = max_attempts
        self._code_length = code_length
        self._clock = clock

    async def issue(self, email: str, purpose: OtpPurpose, issuer_ip: str) -> str:
        """Supersede any record for (email, purpose) and return a fresh code."""
        email = email.strip().lower()
        code = generate_otp_code(self._code_length)
        await self._repo.replace(
            OtpDoc(
                email=email,
                code_hash=hash_code(code),
                purpose=purpose,
                ip_address=issuer_ip or "unknown",
                created_at=self._clock(),
            )
        )
        log.info("otp_issued", purpose=purpose.value, ip_hash=hash_ip(issuer_ip))
        return code

    async def verify(self, email: str, code: str, purpose: OtpPurpose) -> VerifyResult:
        email = email.strip().lower()
        record, failure = await self._load_live(email, purpose)
        if failure is not None:
            return failure

        if not code_matches(code, record.code_hash):
            await self._repo.increment_attempts(str(record.id), below=self._max_attempts)
            log.warning("otp_verification_failed", purpose=purpose.value, reason="mismatch")
            return VerifyResult(ok=False, reason=OtpFailure.MISMATCH)

        if purpose is OtpPurpose.SIGNUP:
            # Single use: only the caller that deletes the record wins
            if not await self._repo.delete(str(record.id)):
                return VerifyResult(ok=False, reason=OtpFailure.EXPIRED)
        else:
            # The successful check counts against the budget too
            updated = await self._repo.increment_attempts(
                str(record.id), below=self._max_attempts, stage=OtpStage.VERIFIED
            )
            if updated is None:
                await self._repo.delete(str(record.id))
                return VerifyResult(ok=False, reason=OtpFailure.EXHAUSTED)

        log.info("otp_verified", purpose=purpose.value)
        return _OK

    async def consume_for_reset(self, email: str, code: str) -> VerifyResult:
        """Final reset check. The record is deleted whatever the outcome."""
        email = email.strip().lower()
        record, failure = await self._load_live(email, OtpPurpose.RESET)
        if failure is not None:
            return failure

        removed = await self._repo.delete(str(record.id))
        if not removed:
            return VerifyResult(ok=False, reason=OtpFailure.EXPIRED)
        if not code_matches(code, record.code_hash):
            log.warning("otp_reset_rejected", reason="mismatch")
            return VerifyResult(ok=False, reason=OtpFailure.MISMATCH)
        if not record.verified:
            log.warning("otp_reset_rejected", reason="not_verified")
            return VerifyResult(ok=False, reason=OtpFailure.NOT_VERIFIED)
        return _OK

    def _age_ok(self, record: OtpDoc) -> bool:
        return self._clock() - ensure_aware(record.created_at) < self._ttl

    async def _load_live(
        self, email: str, purpose: OtpPurpose
    ) -> tuple[Optional[OtpDoc], Optional[VerifyResult]]:
        record = await self._repo.find(email, purpose)
        if record is None:
            return None, VerifyResult(ok=False, reason=OtpFailure.EXPIRED)
        if not self._age_ok(record):
            await self._repo.delete(str(record.id))
            return None, VerifyResult(ok=False, reason=OtpFailure.EXPIRED)
        if record.attempts >= self._max_attempts:
            await self._repo.delete(str(record.id))
            log.warning("otp_attempts_exhausted", purpose=purpose.value)
            return None, VerifyResult(ok=False, reason=OtpFailure.EXHAUSTED)
        return record, None
