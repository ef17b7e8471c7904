"""Configuration contract for propguard.

Pydantic-validated settings shared by the checker, the SQL stores and the
logging setup. Direct os.environ/os.getenv usage is confined to
``load_config_from_env()``; everything else receives a GuardConfig.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FieldAbsencePolicy(str, Enum):
    """How the field level treats a field with no FieldPermission row.

    - OBJECT: fall back to the object-level can_read / can_edit (default)
    - ALLOW: no row means no restriction
    - DENY: no row means no access
    """

    OBJECT = "object"
    ALLOW = "allow"
    DENY = "deny"


DEFAULT_ALWAYS_VISIBLE_FIELDS = ("id", "created_at", "updated_at")

_DATABASE_SCHEMES = (
    "postgresql://",
    "postgresql+asyncpg://",
    "postgresql+psycopg://",
    "sqlite+aiosqlite://",
)


class GuardConfig(BaseModel):
    """Settings for the access-control engine.

    RULE: All settings MUST come through this object.
    Only load_config_from_env() reads the environment.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Persistence
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy async URL (e.g. postgresql+asyncpg://user@host/db)",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements (debug only)",
    )

    # Service identification
    service_name: Optional[str] = Field(
        default=None,
        description="Service name for log records",
    )

    # Decision policies
    field_absence_policy: FieldAbsencePolicy = Field(
        default=FieldAbsencePolicy.OBJECT,
        description="Level-4 behaviour when a field has no explicit permission row",
    )
    distinguish_not_found: bool = Field(
        default=False,
        description=(
            "Report OBJECT_NOT_FOUND for missing records instead of folding them "
            "into OWNERSHIP_VIOLATION. Off by default so existence is not leaked."
        ),
    )
    always_visible_fields: tuple[str, ...] = Field(
        default=DEFAULT_ALWAYS_VISIBLE_FIELDS,
        description="Identity/audit columns the field filter never removes",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate database URL scheme."""
        if v is None:
            return v
        if not v.startswith(_DATABASE_SCHEMES):
            raise ValueError(f"Database URL must start with one of {', '.join(_DATABASE_SCHEMES)}")
        if v.startswith("postgresql://"):
            # async engine needs an async driver
            v = "postgresql+asyncpg://" + v[len("postgresql://") :]
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("field_absence_policy", mode="before")
    @classmethod
    def validate_field_absence_policy(cls, v: str | FieldAbsencePolicy) -> FieldAbsencePolicy:
        if isinstance(v, FieldAbsencePolicy):
            return v
        try:
            return FieldAbsencePolicy(str(v).lower())
        except ValueError:
            raise ValueError(
                f"Invalid field absence policy: {v}. Must be one of {[e.value for e in FieldAbsencePolicy]}"
            )

    model_config = {
        "extra": "forbid",  # Prevent accidental extra fields
        "frozen": True,
    }


def _truthy(value: str | None, default: str = "false") -> bool:
    return (value if value is not None else default).lower() in ("true", "1", "yes", "on")


def load_config_from_env() -> GuardConfig:
    """Load configuration from environment variables.

    This is the ONLY place where os.getenv is allowed.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - DATABASE_URL: SQLAlchemy async database URL
    - DATABASE_ECHO: Echo SQL (true/false)
    - SERVICE_NAME: Service name for log records
    - FIELD_ABSENCE_POLICY: object | allow | deny
    - DISTINGUISH_NOT_FOUND: true/false
    - ALWAYS_VISIBLE_FIELDS: Comma-separated column names

    Returns:
        GuardConfig instance with values from environment or defaults.
    """
    import os

    visible_raw = os.getenv("ALWAYS_VISIBLE_FIELDS", "")
    visible = tuple(f.strip() for f in visible_raw.split(",") if f.strip()) or DEFAULT_ALWAYS_VISIBLE_FIELDS

    return GuardConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=_truthy(os.getenv("LOG_JSON")),
        database_url=os.getenv("DATABASE_URL"),
        database_echo=_truthy(os.getenv("DATABASE_ECHO")),
        service_name=os.getenv("SERVICE_NAME"),
        field_absence_policy=os.getenv("FIELD_ABSENCE_POLICY", FieldAbsencePolicy.OBJECT.value),
        distinguish_not_found=_truthy(os.getenv("DISTINGUISH_NOT_FOUND")),
        always_visible_fields=visible,
    )


__all__ = [
    "DEFAULT_ALWAYS_VISIBLE_FIELDS",
    "FieldAbsencePolicy",
    "GuardConfig",
    "LogLevel",
    "load_config_from_env",
]
