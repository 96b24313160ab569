"""
FastAPI dependency providers.

Services are built once in the app lifespan and stored on ``app.state``;
these providers hand them to route handlers through ``Depends()``. Tests
swap implementations by assigning fakes to ``app.state`` or through
``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from fastapi import Depends, Request

from config import AppSettings
from errors import RateLimitError
from schemas.models.user import UserDoc
from services.auth_service import AuthService
from services.rate_limiter import RateLimiterBackend, RateLimitPolicy
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)

# Checked in priority order; the first non-empty value wins
_CLIENT_IP_HEADERS = (
    "CF-Connecting-IP",
    "True-Client-IP",
    "X-Forwarded-For",
    "X-Real-IP",
)


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_rate_limiter(request: Request) -> RateLimiterBackend:
    return request.app.state.rate_limiter


def client_ip(request: Request) -> str:
    """Resolve the caller's address, honouring the usual proxy headers.

    ``X-Forwarded-For`` may carry a chain; only the first (client) hop is used.
    Falls back to the socket peer, then to ``"unknown"``.
    """
    for header in _CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value:
            ip = value.split(",")[0].strip()
            if ip:
                return ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(policy: RateLimitPolicy) -> Callable[..., Awaitable[None]]:
    """Build a dependency that charges one point against *policy* per request IP."""

    async def _check(
        request: Request,
        limiter: RateLimiterBackend = Depends(get_rate_limiter),
    ) -> None:
        ip = client_ip(request)
        result = limiter.consume(policy, ip)
        if not result.allowed:
            log.warning(
                "rate_limit_hit",
                policy=policy.name,
                ip_hash=hash_ip(ip),
                retry_after=result.retry_after_seconds,
            )
            raise RateLimitError(
                f"Too many requests. Please try again in {result.retry_after_seconds} seconds.",
                retry_after=result.retry_after_seconds,
            )

    return _check


def bearer_token(request: Request) -> Optional[str]:
    """Return the token from ``Authorization: Bearer <token>``, or None."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> UserDoc:
    """Resolve the bearer token to a verified user or raise 401/403."""
    return await auth_service.resolve_bearer(bearer_token(request))
