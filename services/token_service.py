"""
Bearer token minting and verification.

Tokens are stateless JWTs carrying {sub, email, iat, exp, iss, aud}. RS256 is
used when a key pair is configured, HS256 with the server secret otherwise.
There is no server-side revocation list.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

import jwt

from config import JWTSettings
from errors import TokenError
from schemas.models.user import UserDoc
from shared.datetime_utils import Clock, utcnow


class TokenFailure(str, Enum):
    EXPIRED = "expired"
    MALFORMED = "malformed"
    NOT_YET_VALID = "not_yet_valid"


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    def __init__(self, settings: JWTSettings, clock: Clock = utcnow) -> None:
        self._settings = settings
        self._clock = clock
        if settings.use_rs256:
            # Support keys provided via env with literal \n sequences
            self._signing_key = settings.jwt_private_key.replace("\\n", "\n")
            self._verify_key = settings.jwt_public_key.replace("\\n", "\n")
            self._algorithm = "RS256"
        else:
            if not settings.jwt_secret:
                raise RuntimeError(
                    "JWT_SECRET must be set when RS256 keys are not provided"
                )
            self._signing_key = self._verify_key = settings.jwt_secret
            self._algorithm = "HS256"

    def issue(self, user: UserDoc) -> str:
        now = self._clock()
        claims = {
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "sub": str(user.id),
            "email": user.email,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int(
                (now + timedelta(seconds=self._settings.access_token_ttl_seconds)).timestamp()
            ),
        }
        return jwt.encode(claims, self._signing_key, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Decode *token* or raise TokenError with the failure reason in ``code``.

        Signature, issuer and audience are checked by PyJWT; the time claims
        are checked against the injected clock.
        """
        try:
            claims = jwt.decode(
                token,
                self._verify_key,
                algorithms=[self._algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options={
                    "require": ["sub", "exp", "iat"],
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                },
            )
            issued_at = datetime.fromtimestamp(int(claims["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
            not_before = datetime.fromtimestamp(
                int(claims.get("nbf", claims["iat"])), tz=timezone.utc
            )
        except (jwt.InvalidTokenError, TypeError, ValueError, OverflowError) as e:
            raise TokenError("Invalid token", code=TokenFailure.MALFORMED.value) from e

        now = self._clock()
        if now >= expires_at:
            raise TokenError("Token expired", code=TokenFailure.EXPIRED.value, expired=True)
        if now < not_before:
            raise TokenError("Token not active", code=TokenFailure.NOT_YET_VALID.value)

        return TokenClaims(
            subject_id=str(claims["sub"]),
            email=claims.get("email", ""),
            issued_at=issued_at,
            expires_at=expires_at,
        )
