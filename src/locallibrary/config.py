import os
import logging
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "dev-secret-change-me"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    """Application settings, usually loaded from environment."""

    database_url: str = "sqlite:///locallibrary.db"
    database_echo: bool = False

    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_expire_minutes: int = 60 * 24 * 7

    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000"]
    )
    host: str = "127.0.0.1"
    port: int = 3001
    log_level: str = "INFO"
    environment: str = "development"

    local_storage_path: str = "library.local.db"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        origins = os.getenv("CORS_ORIGINS")
        settings = cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=_env_bool("DATABASE_ECHO"),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            token_expire_minutes=int(
                os.getenv("TOKEN_EXPIRE_MINUTES", cls.token_expire_minutes)
            ),
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", cls.port)),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            environment=os.getenv("LIBRARY_ENV", cls.environment),
            local_storage_path=os.getenv(
                "LOCAL_STORAGE_PATH", cls.local_storage_path
            ),
        )
        if origins:
            settings.cors_origins = [
                o.strip() for o in origins.split(",") if o.strip()
            ]
        settings.check()
        return settings

    def check(self):
        if self.jwt_secret == DEV_JWT_SECRET:
            if self.environment != "development":
                raise RuntimeError("JWT_SECRET must be set outside development")
            logger.warning("JWT_SECRET not set, using the development secret")


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
