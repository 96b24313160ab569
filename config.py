"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Decision on the signing secret: JWT_SECRET is the primary variable, but the
legacy SECRET_KEY is accepted as a fallback (handled in AppSettings via
model_validator).
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "inkwell"

    # Upper bound for every MongoDB round-trip (pymongo timeoutMS)
    timeout_ms: int = 10_000


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "inkwell"
    jwt_audience: str = "inkwell.api"
    access_token_ttl_seconds: int = 7 * 24 * 3600

    # RS256 keys (preferred)
    jwt_private_key: str = ""
    jwt_public_key: str = ""

    # HS256 fallback (used when RS256 keys are absent)
    jwt_secret: str = ""

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_private_key and self.jwt_public_key)


class OtpSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    otp_ttl_seconds: int = 300
    otp_max_attempts: int = 3
    otp_length: int = 6


class LockoutSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    max_login_attempts: int = 5
    lockout_seconds: int = 30 * 60


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@inkwell.blog"
    zepto_from_name: str = "Inkwell"
    email_timeout_seconds: float = 10.0


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    secret_key: str = ""  # legacy alias for jwt_secret
    env: str = "development"
    app_name: str = "Inkwell"
    app_url: str = "https://inkwell.blog"
    client_url: str = "http://localhost:5173"

    cors_origins: list[str] = ["*"]

    # Storage URI understood by the limits package (memory://, redis://, ...)
    rate_limit_storage_uri: str = "memory://"

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    otp: Optional[OtpSettings] = None
    lockout: Optional[LockoutSettings] = None
    email: Optional[EmailSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs_and_secret(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.otp is None:
            self.otp = OtpSettings()
        if self.lockout is None:
            self.lockout = LockoutSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        # Accept SECRET_KEY as a fallback for the HS256 signing secret
        if not self.jwt.jwt_secret and self.secret_key:
            self.jwt.jwt_secret = self.secret_key

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
