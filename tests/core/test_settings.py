"""Tests for core.settings module.

Covers:
- DiscriminatorConfig validation
- BsonSpineSettings defaults and environment overrides
- get_settings caching
"""

import pytest
from pydantic import ValidationError

from bsonspine.core.errors import InvalidConfigError
from bsonspine.core.settings import (
    PAYLOAD_FIELD_NAME,
    BsonSpineSettings,
    DiscriminatorConfig,
    DiscriminatorStyle,
    LogFormat,
    clear_settings_cache,
    get_settings,
)


class TestDiscriminatorConfig:
    def test_default_field_name(self):
        assert DiscriminatorConfig().field_name == "_t"

    def test_custom_field_name(self):
        assert DiscriminatorConfig("kind").field_name == "kind"

    def test_is_immutable(self):
        config = DiscriminatorConfig("_t")
        with pytest.raises(AttributeError):
            config.field_name = "other"  # type: ignore[misc]

    @pytest.mark.parametrize("name", ["", PAYLOAD_FIELD_NAME, "a\x00b"])
    def test_rejects_invalid_names(self, name):
        with pytest.raises(InvalidConfigError) as exc_info:
            DiscriminatorConfig(name)
        assert exc_info.value.key == "field_name"

    def test_payload_name_is_reserved(self):
        assert PAYLOAD_FIELD_NAME == "_v"


class TestBsonSpineSettingsDefaults:
    def test_defaults(self):
        s = BsonSpineSettings()
        assert s.discriminator_field_name == "_t"
        assert s.discriminator_style == DiscriminatorStyle.SCALAR
        assert s.log_level == "WARNING"
        assert s.log_format == LogFormat.AUTO

    def test_discriminator_config(self):
        assert BsonSpineSettings().discriminator_config() == DiscriminatorConfig("_t")

    def test_json_logs_auto_is_none(self):
        assert BsonSpineSettings().json_logs is None


class TestBsonSpineSettingsEnvOverride:
    def test_field_name_from_env(self, monkeypatch):
        monkeypatch.setenv("BSONSPINE_DISCRIMINATOR_FIELD_NAME", "kind")
        s = BsonSpineSettings()
        assert s.discriminator_config().field_name == "kind"

    def test_style_from_env(self, monkeypatch):
        monkeypatch.setenv("BSONSPINE_DISCRIMINATOR_STYLE", "hierarchical")
        assert BsonSpineSettings().discriminator_style == DiscriminatorStyle.HIERARCHICAL

    def test_log_level_is_uppercased(self, monkeypatch):
        monkeypatch.setenv("BSONSPINE_LOG_LEVEL", "debug")
        assert BsonSpineSettings().log_level == "DEBUG"

    @pytest.mark.parametrize(("fmt", "expected"), [("json", True), ("console", False)])
    def test_json_logs_from_format(self, monkeypatch, fmt, expected):
        monkeypatch.setenv("BSONSPINE_LOG_FORMAT", fmt)
        assert BsonSpineSettings().json_logs is expected

    def test_reserved_field_name_rejected(self, monkeypatch):
        monkeypatch.setenv("BSONSPINE_DISCRIMINATOR_FIELD_NAME", "_v")
        with pytest.raises(ValidationError):
            BsonSpineSettings()

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            BsonSpineSettings(log_level="LOUD")


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_force_reload(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("BSONSPINE_DISCRIMINATOR_FIELD_NAME", "kind")
        assert get_settings() is first
        reloaded = get_settings(_force_reload=True)
        assert reloaded is not first
        assert reloaded.discriminator_field_name == "kind"

    def test_clear_cache(self):
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first
