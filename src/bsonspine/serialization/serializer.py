"""
Document serializer facade.

Assembles a discriminator convention, a codec registry and the polymorphic
codec into a ``dumps`` / ``loads`` pair over bytes.

Manifesto:
    Most callers want "bytes in, object out" and should not have to wire a
    convention, a registry and cursors by hand. The facade does that wiring
    once, from settings or from explicit parts, and keeps each part
    reachable for callers that need to register their own types.

Examples:
    >>> serializer = DocumentSerializer.from_settings()
    >>> serializer.discriminators.register(Shape)
    >>> serializer.discriminators.register(Circle)
    >>> data = serializer.dumps(Circle(radius=2.0), Shape)
    >>> serializer.loads(data, Shape)
    Circle(radius=2.0)

Tags:
    serializer, facade, dumps, loads, bson-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from bsonspine.core.errors import CorruptDocumentError, ErrorContext
from bsonspine.core.settings import BsonSpineSettings, get_settings
from bsonspine.io.reader import BinaryDocumentReader
from bsonspine.io.writer import BinaryDocumentWriter
from bsonspine.serialization.codecs import (
    BooleanCodec,
    Coordinates3D,
    Coordinates3DCodec,
    DiscriminatedWrapperCodec,
    DoubleCodec,
    IntCodec,
    PolymorphicCodec,
    StringCodec,
    ValueCodec,
    dataclass_provider,
)
from bsonspine.serialization.context import DecodingContext, EncodingContext
from bsonspine.serialization.conventions import (
    DiscriminatorRegistry,
    StandardDiscriminatorConvention,
    create_convention,
)
from bsonspine.serialization.registry import CodecRegistry


def build_codec_registry(convention: StandardDiscriminatorConvention) -> CodecRegistry:
    """Registry with the built-in codecs and the dataclass provider."""
    registry = CodecRegistry(providers=[dataclass_provider(convention)])
    registry.register(str, StringCodec())
    registry.register(int, IntCodec())
    registry.register(float, DoubleCodec())
    registry.register(bool, BooleanCodec())
    registry.register(object, ValueCodec())
    registry.register(dict, ValueCodec(dict))
    registry.register(list, ValueCodec(list))
    registry.register(Coordinates3D, Coordinates3DCodec())
    return registry


class DocumentSerializer:
    def __init__(self, convention: StandardDiscriminatorConvention, registry: CodecRegistry):
        self._convention = convention
        self._registry = registry

    @classmethod
    def from_settings(
        cls,
        settings: BsonSpineSettings | None = None,
        discriminators: DiscriminatorRegistry | None = None,
    ) -> DocumentSerializer:
        settings = settings or get_settings()
        convention = create_convention(
            settings.discriminator_config(),
            discriminators or DiscriminatorRegistry(),
            settings.discriminator_style,
        )
        return cls(convention, build_codec_registry(convention))

    @property
    def convention(self) -> StandardDiscriminatorConvention:
        return self._convention

    @property
    def registry(self) -> CodecRegistry:
        return self._registry

    @property
    def discriminators(self) -> DiscriminatorRegistry:
        return self._convention.discriminators

    def wrapper_codec(self, nominal_type: type = object) -> DiscriminatedWrapperCodec[Any]:
        return DiscriminatedWrapperCodec(self._convention, self._registry, nominal_type)

    def codec_for(self, nominal_type: type) -> PolymorphicCodec:
        return PolymorphicCodec(nominal_type, self._registry, self._convention)

    def dumps(self, value: Any, nominal_type: type | None = None) -> bytes:
        """Encode ``value`` as one top-level document.

        Wrapped when ``type(value)`` differs from ``nominal_type``; a value
        that is not itself a document therefore needs a wider nominal type.
        """
        nominal_type = nominal_type or type(value)
        writer = BinaryDocumentWriter()
        self.codec_for(nominal_type).encode(EncodingContext(writer, nominal_type), value)
        return writer.to_bytes()

    def loads(self, data: bytes, nominal_type: type = object) -> Any:
        reader = BinaryDocumentReader(data)
        value = self.codec_for(nominal_type).decode(DecodingContext(reader, nominal_type))
        if not reader.is_at_end_of_stream():
            raise CorruptDocumentError(
                f"Unexpected trailing bytes after document at position {reader.position}",
                context=ErrorContext(position=reader.position),
            )
        return value

    def iter_loads(self, data: bytes, nominal_type: type = object) -> Iterator[Any]:
        """Decode a stream of concatenated top-level documents."""
        reader = BinaryDocumentReader(data)
        codec = self.codec_for(nominal_type)
        while not reader.is_at_end_of_stream():
            yield codec.decode(DecodingContext(reader, nominal_type))
