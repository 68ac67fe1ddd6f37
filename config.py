"""
Runtime configuration for the EcoCart API.

Everything is read from environment variables once, at startup, into a
``Settings`` object that is handed to the app factory. Defaults are meant for
local/demo use only.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

DEFAULT_JWT_SECRET = "ecocart-secret-key"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "ecocart"
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_ttl_days: int = 7
    stripe_secret_key: Optional[str] = None
    currency: str = "usd"
    client_origin: str = "http://localhost:5173"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    seed_on_startup: bool = True
    environment: str = "development"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        settings = cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_name=os.getenv("DATABASE_NAME", cls.database_name),
            jwt_secret=os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY") or None,
            currency=os.getenv("PAYMENT_CURRENCY", cls.currency).lower(),
            client_origin=os.getenv("CLIENT_ORIGIN", cls.client_origin),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            seed_on_startup=_env_bool("SEED_ON_STARTUP", True),
            environment=os.getenv("APP_ENV", cls.environment),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
        settings.validate()
        return settings

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def payments_live(self) -> bool:
        return bool(self.stripe_secret_key)

    def validate(self) -> None:
        if self.is_production and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET must be set when APP_ENV=production")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(format="%(message)s", level=getattr(logging, level, logging.INFO))
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        cache_logger_on_first_use=True,
    )
