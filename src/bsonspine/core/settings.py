"""Settings for bson-spine codecs and tooling.

Every codec stack built by bson-spine needs the same few decisions: which
field name carries the discriminator, whether discriminators are scalar or
hierarchical, and how to log.  ``BsonSpineSettings`` reads them from the
environment (``BSONSPINE_`` prefix) and ``.env`` files; ``DiscriminatorConfig``
is the immutable record handed to each discriminator convention.

Manifesto:
    Configuration should be explicit, validated, and environment-driven,
    but never ambient inside the codec layer.  Settings are read once at the
    edge (CLI, ``DocumentSerializer.from_settings``) and passed down as plain
    values.

    - **Pydantic validation:** The discriminator field name is checked at startup
    - **Environment-driven:** Reads from env vars and .env files
    - **Injected, not global:** Conventions receive a ``DiscriminatorConfig``

Examples:
    >>> from bsonspine.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.discriminator_config().field_name
    '_t'

Tags:
    settings, configuration, pydantic, environment, bson-spine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bsonspine.core.errors import InvalidConfigError

# Name of the payload field of a tagged document; not configurable.
PAYLOAD_FIELD_NAME = "_v"

DEFAULT_DISCRIMINATOR_FIELD_NAME = "_t"


def _check_field_name(name: str) -> str:
    if not name:
        raise ValueError("discriminator field name must not be empty")
    if name == PAYLOAD_FIELD_NAME:
        raise ValueError(f"discriminator field name must not be the reserved '{PAYLOAD_FIELD_NAME}'")
    if "\x00" in name:
        raise ValueError("discriminator field name must not contain NUL")
    return name


@dataclass(frozen=True)
class DiscriminatorConfig:
    """Immutable discriminator configuration carried by each convention."""

    field_name: str = DEFAULT_DISCRIMINATOR_FIELD_NAME

    def __post_init__(self) -> None:
        try:
            _check_field_name(self.field_name)
        except ValueError as e:
            raise InvalidConfigError("field_name", self.field_name, str(e)) from e


class DiscriminatorStyle(str, Enum):
    SCALAR = "scalar"
    HIERARCHICAL = "hierarchical"


class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"
    AUTO = "auto"


class BsonSpineSettings(BaseSettings):
    """Runtime settings for bson-spine.

    Fields
    ──────
    discriminator_field_name : Name of the first field of a tagged document
    discriminator_style      : ``scalar`` or ``hierarchical`` discriminators
    log_level                : Structlog log level
    log_format               : ``json``, ``console`` or ``auto`` (tty detection)
    """

    model_config = SettingsConfigDict(
        env_prefix="BSONSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Discriminators ───────────────────────────────────────────
    discriminator_field_name: str = Field(default=DEFAULT_DISCRIMINATOR_FIELD_NAME)
    discriminator_style: DiscriminatorStyle = Field(default=DiscriminatorStyle.SCALAR)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="WARNING")
    log_format: LogFormat = Field(default=LogFormat.AUTO)

    @field_validator("discriminator_field_name")
    @classmethod
    def _validate_field_name(cls, value: str) -> str:
        return _check_field_name(value)

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value}")
        return level

    def discriminator_config(self) -> DiscriminatorConfig:
        return DiscriminatorConfig(field_name=self.discriminator_field_name)

    @property
    def json_logs(self) -> bool | None:
        """``None`` means auto-detect."""
        if self.log_format == LogFormat.AUTO:
            return None
        return self.log_format == LogFormat.JSON


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, BsonSpineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> BsonSpineSettings:
    """Load, validate, and cache a :class:`BsonSpineSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = BsonSpineSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()
