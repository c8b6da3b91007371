"""
Discriminated wrapper codec.

Serializes a value as a two-field document: the discriminator first, then
the payload under the reserved name ``_v``::

    {
        "_t": "Circle",          # field name from the convention
        "_v": {"radius": 1.5}    # payload, encoded by Circle's codec
    }

This is how a value whose declared (nominal) type is a base class keeps its
concrete (actual) type across a round trip, even when the payload itself is
not a document and so has nowhere to carry a type tag of its own.

Manifesto:
    - **Strict wire contract:** Exactly two fields, in fixed order. Any
      deviation is a StructuralFormatError, never a silent fallback.
    - **Opaque discriminators:** The codec hands the discriminator between
      the convention and the untyped ValueCodec without interpreting it.
    - **Side-effect-free probing:** ``is_positioned_at_tagged_document``
      inspects under a bookmark and always rewinds, so polymorphic callers
      can choose a decode path without copying the document.

Architecture:
    ::

        decode(context)
        ┌───────────────────────────────────────────────────────────────┐
        │ 1. actual = convention.resolve_actual_type(reader, nominal)   │
        │ 2. read_start_document                                        │
        │ 3. read_name == convention.discriminator_field_name ?         │
        │ 4. skip_value  (already resolved in step 1)                   │
        │ 5. read_name == "_v" ?                                        │
        │ 6. registry.lookup(actual).decode(child context)              │
        │ 7. read_bson_type == END_OF_DOCUMENT ?                        │
        │ 8. read_end_document                                          │
        └───────────────────────────────────────────────────────────────┘

        is_positioned_at_tagged_document(reader)
        ┌───────────────────────────────────────────────────────────────┐
        │ with reader.bookmarked():                                     │
        │     DOCUMENT? → first field is discriminator? → skip →        │
        │     second field is "_v"? → skip → END_OF_DOCUMENT?           │
        │ (reader restored on every path, including exceptions)         │
        └───────────────────────────────────────────────────────────────┘

Examples:
    >>> codec = DiscriminatedWrapperCodec(convention, registry, Shape)
    >>> writer = BinaryDocumentWriter()
    >>> codec.encode(EncodingContext(writer, Shape), Circle(radius=1.5))
    >>> reader = BinaryDocumentReader(writer.to_bytes())
    >>> codec.is_positioned_at_tagged_document(reader)
    True
    >>> codec.decode(DecodingContext(reader, Shape))
    Circle(radius=1.5)

Guardrails:
    ❌ DON'T: Fall back to an untagged decode when the shape is wrong
    ✅ DO: Call is_positioned_at_tagged_document first and pick a path

    ❌ DON'T: Catch stream corruption in the probe
    ✅ DO: Let DocumentTruncatedError propagate; only shape mismatches are False

Tags:
    discriminator, wrapper, polymorphism, lookahead, bookmark, bson-spine

Doc-Types:
    - API Reference
    - Wire Format
"""

from __future__ import annotations

from typing import Generic, TypeVar

from bsonspine.core.errors import StructuralFormatError
from bsonspine.core.logging import get_logger
from bsonspine.core.protocols import DiscriminatorConvention
from bsonspine.core.settings import PAYLOAD_FIELD_NAME
from bsonspine.io.bson_type import BsonType
from bsonspine.io.reader import BinaryDocumentReader
from bsonspine.serialization.codecs.value import ValueCodec
from bsonspine.serialization.context import DecodingContext, EncodingContext
from bsonspine.serialization.registry import CodecRegistry

logger = get_logger(__name__)

T = TypeVar("T")

_END_OF_DOCUMENT = "end of document"


class DiscriminatedWrapperCodec(Generic[T]):
    """Encodes values as ``{<discriminator field>: ..., "_v": ...}``.

    Holds no per-call state; one instance may be shared across threads as
    long as each call uses its own reader or writer.
    """

    def __init__(
        self,
        convention: DiscriminatorConvention,
        registry: CodecRegistry,
        nominal_type: type = object,
    ):
        self._convention = convention
        self._registry = registry
        self._nominal_type = nominal_type
        self._discriminator_codec = ValueCodec()

    @property
    def value_type(self) -> type:
        return self._nominal_type

    @property
    def convention(self) -> DiscriminatorConvention:
        return self._convention

    def decode(self, context: DecodingContext) -> T:
        reader = context.reader
        nominal_type = context.nominal_type
        field_name = self._convention.discriminator_field_name

        actual_type = self._convention.resolve_actual_type(reader, nominal_type)

        bson_type = reader.get_current_bson_type()
        if bson_type != BsonType.DOCUMENT:
            raise self._format_error(
                context,
                f"Expected a discriminated wrapper to be a document, not: {bson_type.name}.",
                expected=BsonType.DOCUMENT.name,
                actual=bson_type.name,
            )
        reader.read_start_document()

        first_name = self._read_field_name(reader)
        if first_name != field_name:
            raise self._format_error(
                context,
                f"Expected the first field of a discriminated wrapper to be "
                f"'{field_name}', not: {self._describe(first_name)}.",
                expected=field_name,
                actual=first_name or _END_OF_DOCUMENT,
            )
        reader.skip_value()

        second_name = self._read_field_name(reader)
        if second_name != PAYLOAD_FIELD_NAME:
            raise self._format_error(
                context,
                f"Expected the second field of a discriminated wrapper to be "
                f"'{PAYLOAD_FIELD_NAME}', not: {self._describe(second_name)}.",
                expected=PAYLOAD_FIELD_NAME,
                actual=second_name or _END_OF_DOCUMENT,
            )

        codec = self._registry.lookup(actual_type)
        value = codec.decode(context.create_child(actual_type))

        if reader.read_bson_type() != BsonType.END_OF_DOCUMENT:
            extra_name = reader.read_name()
            raise self._format_error(
                context,
                f"Expected a discriminated wrapper to be a document with exactly two fields, "
                f"'{field_name}' and '{PAYLOAD_FIELD_NAME}'.",
                expected=_END_OF_DOCUMENT,
                actual=extra_name,
            )
        reader.read_end_document()
        return value

    def encode(self, context: EncodingContext, value: T) -> None:
        writer = context.writer
        actual_type = type(value)
        discriminator = self._convention.discriminator_for(context.nominal_type, actual_type)
        codec = self._registry.lookup(actual_type)

        writer.write_start_document()
        writer.write_name(self._convention.discriminator_field_name)
        context.encode_with_child_context(self._discriminator_codec, discriminator)
        writer.write_name(PAYLOAD_FIELD_NAME)
        codec.encode(context.create_child(actual_type), value)
        writer.write_end_document()

    def is_positioned_at_tagged_document(self, reader: BinaryDocumentReader) -> bool:
        """Whether the reader is at a structurally valid tagged document.

        Purely structural; does not check that the discriminator resolves.
        The reader is left exactly where it was.
        """
        with reader.bookmarked():
            if reader.get_current_bson_type() != BsonType.DOCUMENT:
                return False
            reader.read_start_document()
            if reader.read_bson_type() == BsonType.END_OF_DOCUMENT:
                return False
            if reader.read_name() != self._convention.discriminator_field_name:
                return False
            reader.skip_value()
            if reader.read_bson_type() == BsonType.END_OF_DOCUMENT:
                return False
            if reader.read_name() != PAYLOAD_FIELD_NAME:
                return False
            reader.skip_value()
            return reader.read_bson_type() == BsonType.END_OF_DOCUMENT

    # ── Internals ────────────────────────────────────────────────

    @staticmethod
    def _read_field_name(reader: BinaryDocumentReader) -> str | None:
        if reader.read_bson_type() == BsonType.END_OF_DOCUMENT:
            return None
        return reader.read_name()

    @staticmethod
    def _describe(name: str | None) -> str:
        return _END_OF_DOCUMENT if name is None else f"'{name}'"

    def _format_error(
        self,
        context: DecodingContext,
        message: str,
        *,
        expected: str,
        actual: str,
    ) -> StructuralFormatError:
        logger.debug(
            "discriminated_wrapper_rejected",
            expected=expected,
            actual=actual,
            position=context.reader.position,
        )
        error = StructuralFormatError(message, expected=expected, actual=actual)
        error.with_context(
            position=context.reader.position,
            nominal_type=getattr(context.nominal_type, "__name__", repr(context.nominal_type)),
        )
        return error

