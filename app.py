"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from limits.storage import storage_from_string
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.protocol import EmailNotifier
from infrastructure.email.zeptomail import ZeptoMailNotifier
from repositories.mongo_otp_repository import MongoOtpRepository
from repositories.mongo_user_repository import MongoUserRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from services.auth_service import AuthService
from services.credential_service import CredentialVerifier
from services.otp_service import OtpStore
from services.rate_limiter import RateLimiter
from services.token_service import TokenIssuer
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def build_auth_service(
    settings: AppSettings,
    db: AsyncDatabase,
    limiter: RateLimiter,
    notifier: EmailNotifier,
) -> tuple[AuthService, MongoUserRepository, MongoOtpRepository]:
    """Wire the repositories and security components into an AuthService."""
    users = MongoUserRepository(db)
    otp_repo = MongoOtpRepository(db, ttl_seconds=settings.otp.otp_ttl_seconds)
    service = AuthService(
        users=users,
        otps=OtpStore(
            otp_repo,
            ttl_seconds=settings.otp.otp_ttl_seconds,
            max_attempts=settings.otp.otp_max_attempts,
            code_length=settings.otp.otp_length,
        ),
        verifier=CredentialVerifier(
            users,
            max_attempts=settings.lockout.max_login_attempts,
            lockout_seconds=settings.lockout.lockout_seconds,
        ),
        tokens=TokenIssuer(settings.jwt),
        limiter=limiter,
        notifier=notifier,
    )
    return service, users, otp_repo


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(
        log_level=settings.logging.log_level,
        log_format=settings.logging.log_format,
        production=settings.is_production,
    )

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri,
            timeoutMS=settings.db.timeout_ms,
            tz_aware=True,
        )
        db = mongo_client[settings.db.db_name]
        notifier = ZeptoMailNotifier(
            settings.email,
            app_name=settings.app_name,
            expiry_minutes=max(1, settings.otp.otp_ttl_seconds // 60),
        )
        limiter = RateLimiter(storage_from_string(settings.rate_limit_storage_uri))
        auth_service, users, otp_repo = build_auth_service(settings, db, limiter, notifier)

        await users.ensure_indexes()
        await otp_repo.ensure_indexes()

        app.state.settings = settings
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.rate_limiter = limiter
        app.state.auth_service = auth_service
        log.info("app_started", env=settings.env, db_name=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await notifier.aclose()
        await mongo_client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)

    return app
