"""
Shared fixtures: in-memory repositories, a controllable clock and an
AuthService wired to them.
"""

import pytest
from limits.storage import MemoryStorage
from limits.storage import memory as limits_memory

from config import JWTSettings
from services.auth_service import AuthService
from services.credential_service import CredentialVerifier
from services.otp_service import OtpStore
from services.rate_limiter import RateLimiter
from services.token_service import TokenIssuer
from tests.fakes import (
    TEST_JWT_SECRET,
    ClockTime,
    InMemoryOtpRepository,
    InMemoryUserRepository,
    MutableClock,
    RecordingNotifier,
)


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def user_repo(clock):
    return InMemoryUserRepository(clock)


@pytest.fixture
def otp_repo():
    return InMemoryOtpRepository()


@pytest.fixture
def otp_store(otp_repo, clock):
    return OtpStore(otp_repo, clock=clock)


@pytest.fixture
def limiter(clock, monkeypatch):
    # MemoryStorage expires windows by wall time; tie it to the test clock
    monkeypatch.setattr(limits_memory, "time", ClockTime(clock))
    return RateLimiter(MemoryStorage(), clock=clock)


@pytest.fixture
def jwt_settings():
    return JWTSettings(jwt_secret=TEST_JWT_SECRET, jwt_private_key="", jwt_public_key="")


@pytest.fixture
def token_issuer(jwt_settings, clock):
    return TokenIssuer(jwt_settings, clock=clock)


@pytest.fixture
def verifier(user_repo, clock):
    return CredentialVerifier(user_repo, clock=clock)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def auth_service(user_repo, otp_store, verifier, token_issuer, limiter, notifier):
    return AuthService(
        users=user_repo,
        otps=otp_store,
        verifier=verifier,
        tokens=token_issuer,
        limiter=limiter,
        notifier=notifier,
    )
