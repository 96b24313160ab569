"""
OTP document model.

Maps to the `otps` MongoDB collection.

Used for both signup verification and password reset codes.
code_hash stores SHA-256(code) — the plain code is never stored.
attempts counts every verification check against the record; at
OTP max attempts the record is dead.
stage replaces a bare ``verified`` flag: a reset code moves ISSUED → VERIFIED
after the intermediate verify step and is only then accepted by the final
reset.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from schemas.models.base import MongoBaseModel


class OtpPurpose(str, Enum):
    SIGNUP = "signup"
    RESET = "reset"


class OtpStage(str, Enum):
    ISSUED = "issued"
    VERIFIED = "verified"


class OtpDoc(MongoBaseModel):
    """Document model for the `otps` collection."""

    email: str
    code_hash: str
    purpose: OtpPurpose
    ip_address: str = "unknown"
    attempts: int = Field(default=0, ge=0)
    stage: OtpStage = OtpStage.ISSUED
    created_at: datetime

    @property
    def verified(self) -> bool:
        return self.stage is OtpStage.VERIFIED
