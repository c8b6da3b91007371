"""
Protocol definitions for bson-spine.

Canonical contracts shared by the codec layer: the ``Codec`` capability, the
``DiscriminatorConvention`` (type resolver) and the ``CodecProvider`` hook used
by the codec registry. Concrete codecs never inherit from these; they satisfy
them structurally.

Manifesto:
    The discriminated wrapper codec orchestrates three collaborators it does
    not own: a type resolver, a codec registry and a cursor. Depending on
    shapes rather than classes keeps it testable with fakes and lets callers
    plug in their own conventions.

Architecture:
    ::

        Codec Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ value_type               → type the codec handles      │
        │ encode(context, value)   → write value at the cursor   │
        │ decode(context)          → read value at the cursor    │
        └────────────────────────────────────────────────────────┘

        DiscriminatorConvention Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ discriminator_field_name        → e.g. "_t"            │
        │ resolve_actual_type(reader, nominal) → type            │
        │ discriminator_for(nominal, actual)   → opaque value    │
        └────────────────────────────────────────────────────────┘

Context:
    Problem: The wrapper codec must not be coupled to one convention or one
        registry implementation.
    Solution: Single canonical definition of each collaborator shape.
    Alternatives Considered: ABC base classes (require inheritance).

Tags:
    protocol, codec, discriminator, registry, bson-spine, contracts

Doc-Types:
    - API Reference
    - Architecture Decision Record
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from bsonspine.io.reader import BinaryDocumentReader
    from bsonspine.serialization.context import DecodingContext, EncodingContext
    from bsonspine.serialization.registry import CodecRegistry

T = TypeVar("T")


@runtime_checkable
class Codec(Protocol[T]):
    """
    Contract for a value codec.

    A codec writes one value at the writer's current position and reads one
    value at the reader's current position. The surrounding context supplies
    the cursor and the nominal type.

    Examples:
        >>> codec = registry.lookup(Circle)
        >>> codec.encode(EncodingContext(writer, Circle), Circle(radius=1.0))

    Tags:
        protocol, codec, encode, decode
    """

    @property
    def value_type(self) -> type:
        """Type handled by this codec."""
        ...

    def encode(self, context: EncodingContext, value: T) -> None:
        """Write ``value`` at the context's writer."""
        ...

    def decode(self, context: DecodingContext) -> T:
        """Read a value from the context's reader."""
        ...


@runtime_checkable
class DiscriminatorConvention(Protocol):
    """
    Contract for type resolvers.

    Decides which runtime type applies at a stream position, and which
    discriminator value to emit for a (nominal, actual) pair. The convention
    owns the discriminator field name.

    Tags:
        protocol, discriminator, type-resolution
    """

    @property
    def discriminator_field_name(self) -> str:
        """Name of the field holding the discriminator."""
        ...

    def resolve_actual_type(self, reader: BinaryDocumentReader, nominal_type: type) -> type:
        """Determine the runtime type at the reader without moving it."""
        ...

    def discriminator_for(self, nominal_type: type, actual_type: type) -> Any:
        """Produce the discriminator to emit for ``actual_type``."""
        ...


class CodecProvider(Protocol):
    """
    Contract for codec factories consulted by ``CodecRegistry``.

    Returns a codec for ``value_type`` or ``None`` to let the next provider
    try.

    Tags:
        protocol, registry, provider
    """

    def __call__(self, value_type: type, registry: CodecRegistry) -> Codec | None:
        ...


__all__ = ["Codec", "DiscriminatorConvention", "CodecProvider"]
