import json
import os
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()


def _parse_allowed_origins(raw: str) -> list[str]:
    # Accepts CSV ("http://a,http://b") or a JSON array
    if raw.startswith("["):
        try:
            parsed_list = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"ALLOWED_ORIGINS JSON is malformed: {exc}") from exc
        if not isinstance(parsed_list, list):
            raise ValueError("ALLOWED_ORIGINS JSON must be an array")
        origins = [
            origin.strip()
            for origin in parsed_list
            if isinstance(origin, str) and origin.strip()
        ]
    else:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

    if not origins:
        raise ValueError("ALLOWED_ORIGINS must contain at least one origin")
    if "*" in origins:
        raise ValueError(
            "ALLOWED_ORIGINS cannot contain '*' when credentialed requests are used"
        )
    for origin in origins:
        parsed = urlparse(origin)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "ALLOWED_ORIGINS must contain valid http/https origins with host"
            )
    return origins


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean value")


def _positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0")
    return value


class Settings(BaseModel):
    app_name: str = Field(default="Moderation Console")
    debug: bool = Field(default=False)
    database_url: str = Field(default="")
    redis_url: str | None = Field(default=None)
    allowed_origins: list[str] = Field(default_factory=list)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_recycle: int = Field(default=1800)
    db_pool_pre_ping: bool = Field(default=True)
    secret_key: str | None = Field(default=None)
    algorithm: str = Field(default="HS256")
    mail_api_url: str | None = Field(default=None)
    mail_api_key: str | None = Field(default=None)
    mail_timeout_seconds: float = Field(default=10.0)
    console_page_size: int = Field(default=15)
    change_channel_prefix: str = Field(default="moderation:changes")

    @classmethod
    def from_env(cls) -> "Settings":
        secret_key = os.getenv("SECRET_KEY", "").strip()
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set")

        raw_allowed_origins = os.getenv("ALLOWED_ORIGINS", "").strip()
        if not raw_allowed_origins:
            raise ValueError("ALLOWED_ORIGINS environment variable must be set")
        allowed_origins = _parse_allowed_origins(raw_allowed_origins)

        database_url = os.getenv("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL environment variable must be set")

        parsed_db = urlparse(database_url)
        if parsed_db.scheme != "postgresql+asyncpg":
            raise ValueError("DATABASE_URL must start with 'postgresql+asyncpg://'")
        if not parsed_db.hostname:
            raise ValueError("DATABASE_URL must include hostname")

        db_pool_size = _positive_int(
            "DB_POOL_SIZE",
            os.getenv("DB_POOL_SIZE", str(cls.model_fields["db_pool_size"].default)),
        )
        db_max_overflow = int(
            os.getenv("DB_MAX_OVERFLOW", cls.model_fields["db_max_overflow"].default)
        )
        if db_max_overflow < 0:
            raise ValueError("DB_MAX_OVERFLOW must be greater than or equal to 0")
        db_pool_recycle = _positive_int(
            "DB_POOL_RECYCLE",
            os.getenv(
                "DB_POOL_RECYCLE", str(cls.model_fields["db_pool_recycle"].default)
            ),
        )
        db_pool_pre_ping = _parse_bool(
            "DB_POOL_PRE_PING",
            os.getenv(
                "DB_POOL_PRE_PING", str(cls.model_fields["db_pool_pre_ping"].default)
            ),
        )

        # Redis is optional; without it live updates stay in-process
        redis_url = os.getenv("REDIS_URL", "").strip() or None

        mail_api_url = os.getenv("MAIL_API_URL", "").strip() or None
        if mail_api_url is not None:
            parsed_mail = urlparse(mail_api_url)
            if parsed_mail.scheme not in {"http", "https"} or not parsed_mail.netloc:
                raise ValueError("MAIL_API_URL must be a valid http/https URL")

        try:
            mail_timeout_seconds = float(
                os.getenv(
                    "MAIL_TIMEOUT_SECONDS",
                    cls.model_fields["mail_timeout_seconds"].default,
                )
            )
        except ValueError as exc:
            raise ValueError("MAIL_TIMEOUT_SECONDS must be a number") from exc
        if mail_timeout_seconds <= 0:
            raise ValueError("MAIL_TIMEOUT_SECONDS must be greater than 0")

        console_page_size = _positive_int(
            "CONSOLE_PAGE_SIZE",
            os.getenv(
                "CONSOLE_PAGE_SIZE", str(cls.model_fields["console_page_size"].default)
            ),
        )

        return cls(
            app_name=os.getenv("APP_NAME", cls.model_fields["app_name"].default),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            database_url=database_url,
            redis_url=redis_url,
            allowed_origins=allowed_origins,
            secret_key=secret_key,
            algorithm=os.getenv("ALGORITHM", cls.model_fields["algorithm"].default),
            db_pool_size=db_pool_size,
            db_max_overflow=db_max_overflow,
            db_pool_recycle=db_pool_recycle,
            db_pool_pre_ping=db_pool_pre_ping,
            mail_api_url=mail_api_url,
            mail_api_key=os.getenv("MAIL_API_KEY", "").strip() or None,
            mail_timeout_seconds=mail_timeout_seconds,
            console_page_size=console_page_size,
            change_channel_prefix=os.getenv(
                "CHANGE_CHANNEL_PREFIX",
                cls.model_fields["change_channel_prefix"].default,
            ).strip(),
        )


# Settings are validated on first access, not at import time
_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get settings instance, creating it on first access.

    Uses double-checked locking so concurrent first accesses build a single
    instance.

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

