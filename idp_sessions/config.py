import os
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()


def _parse_bool(name: str, raw_value: str) -> bool:
    value = raw_value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean value")


def _positive_int(name: str, raw_value: str | int) -> int:
    try:
        value = int(raw_value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0")
    return value


class Settings(BaseModel):
    app_name: str = Field(default="IdP Session Core")
    debug: bool = Field(default=False)
    database_url: str = Field(default="")
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_recycle: int = Field(default=1800)
    db_pool_pre_ping: bool = Field(default=True)
    sliding_window_minutes: int = Field(default=30)
    access_token_expire_minutes: int = Field(default=10)
    session_absolute_lifetime_hours: int = Field(default=8)
    refresh_rotation_max_attempts: int = Field(default=3)

    @classmethod
    def from_env(cls) -> "Settings":
        database_url = os.getenv("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL environment variable must be set")

        parsed_db = urlparse(database_url)
        if parsed_db.scheme != "postgresql+asyncpg":
            raise ValueError("DATABASE_URL must start with 'postgresql+asyncpg://'")
        if not parsed_db.hostname:
            raise ValueError("DATABASE_URL must include hostname")

        fields = cls.model_fields

        db_pool_size = _positive_int(
            "DB_POOL_SIZE", os.getenv("DB_POOL_SIZE", fields["db_pool_size"].default)
        )

        db_max_overflow = int(
            os.getenv("DB_MAX_OVERFLOW", fields["db_max_overflow"].default)
        )
        if db_max_overflow < 0:
            raise ValueError("DB_MAX_OVERFLOW must be greater than or equal to 0")

        db_pool_recycle = _positive_int(
            "DB_POOL_RECYCLE",
            os.getenv("DB_POOL_RECYCLE", fields["db_pool_recycle"].default),
        )
        db_pool_pre_ping = _parse_bool(
            "DB_POOL_PRE_PING",
            os.getenv("DB_POOL_PRE_PING", str(fields["db_pool_pre_ping"].default)),
        )

        sliding_window_minutes = _positive_int(
            "SLIDING_WINDOW_MINUTES",
            os.getenv(
                "SLIDING_WINDOW_MINUTES", fields["sliding_window_minutes"].default
            ),
        )
        access_token_expire_minutes = _positive_int(
            "ACCESS_TOKEN_EXPIRE_MINUTES",
            os.getenv(
                "ACCESS_TOKEN_EXPIRE_MINUTES",
                fields["access_token_expire_minutes"].default,
            ),
        )
        session_absolute_lifetime_hours = _positive_int(
            "SESSION_ABSOLUTE_LIFETIME_HOURS",
            os.getenv(
                "SESSION_ABSOLUTE_LIFETIME_HOURS",
                fields["session_absolute_lifetime_hours"].default,
            ),
        )
        refresh_rotation_max_attempts = _positive_int(
            "REFRESH_ROTATION_MAX_ATTEMPTS",
            os.getenv(
                "REFRESH_ROTATION_MAX_ATTEMPTS",
                fields["refresh_rotation_max_attempts"].default,
            ),
        )

        if sliding_window_minutes > session_absolute_lifetime_hours * 60:
            raise ValueError(
                "SLIDING_WINDOW_MINUTES cannot exceed SESSION_ABSOLUTE_LIFETIME_HOURS"
            )

        return cls(
            app_name=os.getenv("APP_NAME", fields["app_name"].default),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            database_url=database_url,
            db_pool_size=db_pool_size,
            db_max_overflow=db_max_overflow,
            db_pool_recycle=db_pool_recycle,
            db_pool_pre_ping=db_pool_pre_ping,
            sliding_window_minutes=sliding_window_minutes,
            access_token_expire_minutes=access_token_expire_minutes,
            session_absolute_lifetime_hours=session_absolute_lifetime_hours,
            refresh_rotation_max_attempts=refresh_rotation_max_attempts,
        )


_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get settings instance, creating it on first access.

    Importing this module never validates the environment; validation runs
    the first time settings are read (normally during application startup).

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    global _settings_instance

    if _settings_instance is not None:
        return _settings_instance

    with _settings_lock:
        if _settings_instance is None:
            _settings_instance = Settings.from_env()

    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings_instance
    with _settings_lock:
        _settings_instance = None


class _SettingsProxy:
    """Proxy to defer settings creation until first attribute access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)


settings = _SettingsProxy()  # type: ignore[assignment]
