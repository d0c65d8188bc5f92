import os
import logging
from dataclasses import dataclass, field
from typing import List
from dotenv import load_dotenv


logger = logging.getLogger(__name__)

DEV_SECRET_KEY = "lodge-dev-secret-key-change-me"


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name, default):
    value = os.environ.get(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    database_url: str = "sqlite:///./data/lodge.db"
    jwt_secret: str = DEV_SECRET_KEY
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 24 * 60
    cancellation_lead_hours: int = 24
    confirmation_prefix: str = "MB"
    admin_update_checks_overlap: bool = False
    cors_origins: List[str] = field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )
    log_level: str = "INFO"
    debug: bool = False

    @classmethod
    def from_env(cls):
        """Build settings from the environment, reading a .env file first."""
        load_dotenv()
        defaults = cls()
        secret = os.environ.get("JWT_SECRET")
        if not secret:
            logger.warning("JWT_SECRET is not set, using the development secret")
        return cls(
            database_url=os.environ.get("DATABASE_URL", defaults.database_url),
            jwt_secret=secret or DEV_SECRET_KEY,
            jwt_algorithm=os.environ.get("JWT_ALGORITHM", defaults.jwt_algorithm),
            access_token_expire_minutes=int(
                os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", defaults.access_token_expire_minutes)
            ),
            cancellation_lead_hours=int(
                os.environ.get("CANCELLATION_LEAD_HOURS", defaults.cancellation_lead_hours)
            ),
            confirmation_prefix=os.environ.get("CONFIRMATION_PREFIX", defaults.confirmation_prefix),
            admin_update_checks_overlap=_env_bool("ADMIN_UPDATE_CHECKS_OVERLAP"),
            cors_origins=_env_list("CORS_ORIGINS", defaults.cors_origins),
            log_level=os.environ.get("LOG_LEVEL", defaults.log_level).upper(),
            debug=_env_bool("DEBUG"),
        )
