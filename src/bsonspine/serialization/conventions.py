"""
Discriminator conventions: mapping between runtime types and type tags.

A convention is the type resolver of the codec layer. Given a nominal type
and a reader, it decides which concrete type is stored at the reader's
position. Given a nominal type and an actual type, it produces the
discriminator value to write.

Two conventions are provided:

- ``ScalarDiscriminatorConvention`` writes the leaf class's discriminator,
  e.g. ``"Circle"``.
- ``HierarchicalDiscriminatorConvention`` writes the chain of registered
  classes from root to leaf, e.g. ``["Shape", "Circle"]``, and falls back to
  a scalar when the chain has a single entry.

Both read either form and resolve by the last element, so data written under
one convention stays readable under the other.

Manifesto:
    - **Injected configuration:** The discriminator field name comes from a
      ``DiscriminatorConfig`` given at construction, never from a global
    - **Non-destructive resolution:** The reader is inspected under a
      bookmark and left exactly where it was
    - **Subtype-safe:** A discriminator only resolves to a type assignable to
      the nominal type

Architecture:
    ::

        ┌──────────────────────────────┐     ┌──────────────────────────┐
        │ DiscriminatorRegistry        │     │ DiscriminatorConfig      │
        │  type ⇄ discriminator        │     │  field_name = "_t"       │
        └──────────────┬───────────────┘     └────────────┬─────────────┘
                       │                                  │
                       ▼                                  ▼
        ┌──────────────────────────────────────────────────────────────┐
        │ StandardDiscriminatorConvention                              │
        │   resolve_actual_type(reader, nominal) → type                │
        │   discriminator_for(nominal, actual)   → str | list[str]     │
        ├───────────────────────────────┬──────────────────────────────┤
        │ ScalarDiscriminatorConvention │ HierarchicalDiscriminator... │
        └───────────────────────────────┴──────────────────────────────┘

Examples:
    >>> discriminators = DiscriminatorRegistry()
    >>> discriminators.register(Shape)
    >>> discriminators.register(Circle)
    >>> convention = ScalarDiscriminatorConvention(DiscriminatorConfig("_t"), discriminators)
    >>> convention.discriminator_for(Shape, Circle)
    'Circle'

Tags:
    discriminator, convention, type-resolution, polymorphism, bson-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from bsonspine.core.errors import AmbiguousDiscriminatorError, UnknownDiscriminatorError
from bsonspine.core.logging import get_logger
from bsonspine.core.settings import DiscriminatorConfig, DiscriminatorStyle
from bsonspine.io.bson_type import BsonType
from bsonspine.io.reader import BinaryDocumentReader
from bsonspine.serialization.codecs.value import ValueCodec
from bsonspine.serialization.context import DecodingContext

logger = get_logger(__name__)

_BUILTIN_TYPES: tuple[type, ...] = (bool, int, float, str, list, dict)

# Type used for a non-document element when nothing narrower is declared.
_DEFAULT_TYPES: dict[BsonType, type] = {
    BsonType.DOUBLE: float,
    BsonType.STRING: str,
    BsonType.DOCUMENT: dict,
    BsonType.ARRAY: list,
    BsonType.BOOLEAN: bool,
    BsonType.NULL: type(None),
    BsonType.INT32: int,
    BsonType.INT64: int,
}


class DiscriminatorRegistry:
    """Two-way map between classes and their discriminator values."""

    def __init__(self, *, include_builtins: bool = True):
        self._by_type: dict[type, str] = {}
        self._by_discriminator: dict[str, list[type]] = {}
        self._lock = threading.Lock()
        if include_builtins:
            for builtin in _BUILTIN_TYPES:
                self._by_type[builtin] = builtin.__name__
                self._by_discriminator[builtin.__name__] = [builtin]

    def register(self, cls: type, discriminator: str | None = None) -> type:
        discriminator = discriminator or cls.__name__
        with self._lock:
            existing = self._by_type.get(cls)
            if existing is not None and existing != discriminator:
                raise ValueError(
                    f"Type '{cls.__name__}' is already registered with discriminator '{existing}'"
                )
            self._by_type[cls] = discriminator
            candidates = self._by_discriminator.setdefault(discriminator, [])
            if cls not in candidates:
                candidates.append(cls)
        logger.debug("discriminator_registered", cls=cls.__name__, discriminator=discriminator)
        return cls

    def discriminated(self, discriminator: str | None = None) -> Callable[[type], type]:
        """Decorator form of :meth:`register`."""

        def decorator(cls: type) -> type:
            return self.register(cls, discriminator)

        return decorator

    def is_registered(self, cls: type) -> bool:
        with self._lock:
            return cls in self._by_type

    def discriminator_of(self, cls: type) -> str:
        with self._lock:
            return self._by_type.get(cls, cls.__name__)

    def hierarchy_of(self, cls: type) -> list[type]:
        """Registered classes on ``cls``'s MRO, root first, ending with ``cls``."""
        with self._lock:
            chain = [c for c in reversed(cls.__mro__) if c in self._by_type]
        if not chain or chain[-1] is not cls:
            chain.append(cls)
        return chain

    def lookup_actual_type(self, nominal_type: type, discriminator: Any) -> type:
        if isinstance(discriminator, (list, tuple)):
            if not discriminator:
                raise UnknownDiscriminatorError(discriminator, nominal_type)
            key = discriminator[-1]
        else:
            key = discriminator
        if not isinstance(key, str):
            raise UnknownDiscriminatorError(discriminator, nominal_type)

        with self._lock:
            candidates = [
                c for c in self._by_discriminator.get(key, []) if issubclass(c, nominal_type)
            ]
        if not candidates and self.discriminator_of(nominal_type) == key:
            return nominal_type
        if not candidates:
            raise UnknownDiscriminatorError(discriminator, nominal_type)
        if len(candidates) > 1:
            raise AmbiguousDiscriminatorError(discriminator, candidates)
        return candidates[0]


class StandardDiscriminatorConvention(ABC):
    """Shared resolution logic; subclasses decide what to write."""

    def __init__(self, config: DiscriminatorConfig, discriminators: DiscriminatorRegistry):
        self._config = config
        self._discriminators = discriminators
        self._value_codec = ValueCodec()

    @property
    def config(self) -> DiscriminatorConfig:
        return self._config

    @property
    def discriminators(self) -> DiscriminatorRegistry:
        return self._discriminators

    @property
    def discriminator_field_name(self) -> str:
        return self._config.field_name

    def resolve_actual_type(self, reader: BinaryDocumentReader, nominal_type: type) -> type:
        with reader.bookmarked():
            bson_type = reader.get_current_bson_type()
            if bson_type != BsonType.DOCUMENT:
                if nominal_type is object:
                    return _DEFAULT_TYPES.get(bson_type, object)
                return nominal_type

            reader.read_start_document()
            if not reader.find_element(self.discriminator_field_name):
                return nominal_type
            discriminator = self._value_codec.decode(DecodingContext(reader))
            return self._discriminators.lookup_actual_type(nominal_type, discriminator)

    @abstractmethod
    def discriminator_for(self, nominal_type: type, actual_type: type) -> Any:
        """Discriminator value to write for ``actual_type`` under ``nominal_type``."""
        ...


class ScalarDiscriminatorConvention(StandardDiscriminatorConvention):
    def discriminator_for(self, nominal_type: type, actual_type: type) -> str:
        return self._discriminators.discriminator_of(actual_type)


class HierarchicalDiscriminatorConvention(StandardDiscriminatorConvention):
    def discriminator_for(self, nominal_type: type, actual_type: type) -> str | list[str]:
        chain = [self._discriminators.discriminator_of(c)
                 for c in self._discriminators.hierarchy_of(actual_type)]
        if len(chain) == 1:
            return chain[0]
        return chain


def create_convention(
    config: DiscriminatorConfig,
    discriminators: DiscriminatorRegistry,
    style: DiscriminatorStyle = DiscriminatorStyle.SCALAR,
) -> StandardDiscriminatorConvention:
    if style == DiscriminatorStyle.HIERARCHICAL:
        return HierarchicalDiscriminatorConvention(config, discriminators)
    return ScalarDiscriminatorConvention(config, discriminators)
