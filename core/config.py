"""Application configuration loaded from the environment."""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from auth.config import AuthConfig

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Environment variable -> (config section, field). Section None is AppConfig itself.
ENV_FIELDS: dict[str, tuple[str | None, str]] = {
    "DATABASE_URL": (None, "database_url"),
    "API_PORT": (None, "api_port"),
    "CORS_ORIGINS": (None, "cors_origins"),
    "REQUEST_TIMEOUT_SECONDS": (None, "request_timeout_seconds"),
    "LOG_LEVEL": (None, "log_level"),
    "DB_POOL_MAX_CONNECTIONS": (None, "db_pool_max_connections"),
    "JWT_SECRET": ("auth", "jwt_secret"),
    "ACCESS_TOKEN_MINUTES": ("auth", "access_token_minutes"),
    "REFRESH_TOKEN_HOURS": ("auth", "refresh_token_hours"),
    "PASSWORD_HASH_ROUNDS": ("auth", "password_hash_rounds"),
}

REQUIRED_ENV = ("DATABASE_URL", "JWT_SECRET")


class AppConfig(BaseModel):
    """Process-wide settings."""

    database_url: str = Field(..., min_length=1, repr=False)
    api_port: int = Field(default=8080, ge=1, le=65535)
    cors_origins: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins; empty disables CORS",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        description="Deadline for each request's database work",
        gt=0,
        le=300,
    )
    db_pool_max_connections: int = Field(
        default=40,
        description="Pool ceiling; keep at or above the server threadpool size (40)",
        ge=1,
        le=1000,
    )
    log_level: str = "INFO"
    auth: AuthConfig

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return v


def _env_name(loc: tuple) -> str:
    """Map a validation error location back to its environment variable."""
    for env_name, (section, field) in ENV_FIELDS.items():
        if section is None and loc[:1] == (field,):
            return env_name
        if section is not None and loc[:2] == (section, field):
            return env_name
    return ".".join(str(part) for part in loc)


def load_config(environ: dict[str, str] | None = None) -> AppConfig:
    """
    Build AppConfig from environment variables.

    Loads a .env file first when reading the process environment. Unset or
    empty optional variables fall back to their defaults.

    Args:
        environ: Mapping to read instead of os.environ (used by tests)

    Raises:
        ValueError: Listing every missing or malformed variable at once.
    """
    if environ is None:
        load_dotenv()
        environ = dict(os.environ)

    problems: dict[str, str] = {}
    for name in REQUIRED_ENV:
        if not environ.get(name):
            problems[name] = "required but not set"

    raw: dict = {"auth": {}}
    for env_name, (section, field) in ENV_FIELDS.items():
        value = environ.get(env_name)
        if not value:
            continue
        if section is None:
            raw[field] = value
        else:
            raw[section][field] = value

    try:
        config = AppConfig.model_validate(raw)
    except ValidationError as e:
        for err in e.errors():
            name = _env_name(tuple(err["loc"]))
            problems.setdefault(name, err["msg"])
        config = None

    if problems:
        details = "; ".join(f"{name}: {msg}" for name, msg in sorted(problems.items()))
        raise ValueError(f"Invalid configuration: {details}")

    return config
