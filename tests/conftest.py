"""
Shared pytest fixtures for bson-spine tests.

This module provides:
- Settings and logging reset fixtures for test isolation
- A discriminator registry with the sample Shape hierarchy registered
- A convention, codec registry and wrapper codec wired from those

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments.

    def test_something(wrapper, registry):
        ...
"""

from __future__ import annotations

import pytest
import structlog

from bsonspine.core.settings import DiscriminatorConfig, clear_settings_cache
from bsonspine.serialization.codecs import DiscriminatedWrapperCodec
from bsonspine.serialization.conventions import (
    DiscriminatorRegistry,
    HierarchicalDiscriminatorConvention,
    ScalarDiscriminatorConvention,
)
from bsonspine.serialization.registry import CodecRegistry
from bsonspine.serialization.serializer import DocumentSerializer, build_codec_registry
from tests._support.shapes import Circle, Drawing, Node, RoundedSquare, Shape, Square


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast isolated tests")
    config.addinivalue_line("markers", "cli: CLI command tests")


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_settings_and_logging(monkeypatch: pytest.MonkeyPatch):
    """Start every test from default settings and default structlog config."""
    for var in (
        "BSONSPINE_DISCRIMINATOR_FIELD_NAME",
        "BSONSPINE_DISCRIMINATOR_STYLE",
        "BSONSPINE_LOG_LEVEL",
        "BSONSPINE_LOG_FORMAT",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Codec stack
# =============================================================================


@pytest.fixture
def discriminators() -> DiscriminatorRegistry:
    """Discriminator registry with the sample shapes registered."""
    registry = DiscriminatorRegistry()
    for cls in (Shape, Circle, Square, RoundedSquare, Drawing, Node):
        registry.register(cls)
    return registry


@pytest.fixture
def config() -> DiscriminatorConfig:
    return DiscriminatorConfig("_t")


@pytest.fixture
def convention(config, discriminators) -> ScalarDiscriminatorConvention:
    return ScalarDiscriminatorConvention(config, discriminators)


@pytest.fixture
def hierarchical_convention(config, discriminators) -> HierarchicalDiscriminatorConvention:
    return HierarchicalDiscriminatorConvention(config, discriminators)


@pytest.fixture
def registry(convention) -> CodecRegistry:
    return build_codec_registry(convention)


@pytest.fixture
def wrapper(convention, registry) -> DiscriminatedWrapperCodec:
    """Wrapper codec for the nominal type ``Shape``."""
    return DiscriminatedWrapperCodec(convention, registry, Shape)


@pytest.fixture
def serializer(convention, registry) -> DocumentSerializer:
    return DocumentSerializer(convention, registry)
