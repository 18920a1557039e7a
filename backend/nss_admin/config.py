import json
import os
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()

STORAGE_BACKENDS = frozenset({"json", "redis", "memory"})

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean value")


def _parse_positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0")
    return value


def _parse_allowed_origins(raw_allowed_origins: str) -> list[str]:
    # Support both CSV format and JSON array format
    allowed_origins: list[str] = []
    if raw_allowed_origins.startswith("["):
        try:
            parsed_list = json.loads(raw_allowed_origins)
        except json.JSONDecodeError as exc:
            raise ValueError(f"ALLOWED_ORIGINS JSON is malformed: {exc}") from exc
        if not isinstance(parsed_list, list):
            raise ValueError("ALLOWED_ORIGINS JSON must be an array")
        allowed_origins = [
            origin.strip() for origin in parsed_list if isinstance(origin, str) and origin.strip()
        ]
    else:
        allowed_origins = [
            origin.strip() for origin in raw_allowed_origins.split(",") if origin.strip()
        ]

    if not allowed_origins:
        raise ValueError("ALLOWED_ORIGINS must contain at least one origin")

    if "*" in allowed_origins:
        raise ValueError(
            "ALLOWED_ORIGINS cannot contain '*' when credentialed requests are used"
        )

    for origin in allowed_origins:
        parsed = urlparse(origin)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "ALLOWED_ORIGINS must contain valid http/https origins with host"
            )
    return allowed_origins


class Settings(BaseModel):
    app_name: str = Field(default="NSS Unit Admin")
    debug: bool = Field(default=False)
    secret_key: str | None = Field(default=None)
    algorithm: str = Field(default="HS256")
    session_expire_minutes: int = Field(default=720)
    allowed_origins: list[str] = Field(default_factory=list)
    storage_backend: str = Field(default="json")
    data_dir: str = Field(default="data")
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_key_prefix: str = Field(default="nss:")
    bootstrap_username: str = Field(default="superadmin")
    bootstrap_password: str | None = Field(default=None)
    bootstrap_email: str = Field(default="superadmin@nss.edu")
    seed_demo_accounts: bool = Field(default=False)
    login_max_attempts: int = Field(default=5)
    login_window_seconds: int = Field(default=60)

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls.model_fields

        secret_key = os.getenv("SECRET_KEY", "").strip()
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set")

        raw_allowed_origins = os.getenv("ALLOWED_ORIGINS", "").strip()
        if not raw_allowed_origins:
            raise ValueError("ALLOWED_ORIGINS environment variable must be set")
        allowed_origins = _parse_allowed_origins(raw_allowed_origins)

        storage_backend = os.getenv(
            "STORAGE_BACKEND", defaults["storage_backend"].default
        ).strip().lower()
        if storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"STORAGE_BACKEND must be one of {', '.join(sorted(STORAGE_BACKENDS))}"
            )

        redis_url = os.getenv("REDIS_URL", defaults["redis_url"].default).strip()
        if storage_backend == "redis":
            parsed_redis = urlparse(redis_url)
            if parsed_redis.scheme not in {"redis", "rediss", "unix"}:
                raise ValueError("REDIS_URL must start with 'redis://', 'rediss://' or 'unix://'")

        data_dir = os.getenv("DATA_DIR", defaults["data_dir"].default).strip()
        if storage_backend == "json" and not data_dir:
            raise ValueError("DATA_DIR must be set when STORAGE_BACKEND is 'json'")

        bootstrap_username = os.getenv(
            "BOOTSTRAP_USERNAME", defaults["bootstrap_username"].default
        ).strip()
        if not bootstrap_username:
            raise ValueError("BOOTSTRAP_USERNAME must not be empty")
        bootstrap_password = os.getenv("BOOTSTRAP_PASSWORD", "") or None

        return cls(
            app_name=os.getenv("APP_NAME", defaults["app_name"].default),
            debug=_parse_bool("DEBUG", os.getenv("DEBUG", "false")),
            secret_key=secret_key,
            algorithm=os.getenv("ALGORITHM", defaults["algorithm"].default),
            session_expire_minutes=_parse_positive_int(
                "SESSION_EXPIRE_MINUTES",
                os.getenv(
                    "SESSION_EXPIRE_MINUTES",
                    str(defaults["session_expire_minutes"].default),
                ),
            ),
            allowed_origins=allowed_origins,
            storage_backend=storage_backend,
            data_dir=data_dir,
            redis_url=redis_url,
            redis_key_prefix=os.getenv(
                "REDIS_KEY_PREFIX", defaults["redis_key_prefix"].default
            ),
            bootstrap_username=bootstrap_username,
            bootstrap_password=bootstrap_password,
            bootstrap_email=os.getenv(
                "BOOTSTRAP_EMAIL", defaults["bootstrap_email"].default
            ).strip(),
            seed_demo_accounts=_parse_bool(
                "SEED_DEMO_ACCOUNTS", os.getenv("SEED_DEMO_ACCOUNTS", "false")
            ),
            login_max_attempts=_parse_positive_int(
                "LOGIN_MAX_ATTEMPTS",
                os.getenv("LOGIN_MAX_ATTEMPTS", str(defaults["login_max_attempts"].default)),
            ),
            login_window_seconds=_parse_positive_int(
                "LOGIN_WINDOW_SECONDS",
                os.getenv(
                    "LOGIN_WINDOW_SECONDS", str(defaults["login_window_seconds"].default)
                ),
            ),
        )


# Settings are validated on first access, not at import time
_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get settings instance, creating it on first access.

    Uses double-checked locking so concurrent first requests build a single
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


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings_instance
    with _settings_lock:
        _settings_instance = None

