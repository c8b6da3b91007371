"""Polymorphic field codec.

Chooses between a plain and a tagged representation for one declared type.
A value whose runtime type is exactly the declared type is written plainly;
anything else (a subclass, or any value under ``object``) is wrapped as a
tagged document so the runtime type survives the round trip. An ``int``
under ``float`` is stored plainly as a double. A value that is not an
instance of the declared type is refused, since its tag could not be
resolved on read.

On read, the wrapper's lookahead decides the path without consuming input.
"""

from __future__ import annotations

from typing import Any

from bsonspine.core.errors import CodecError, ErrorContext
from bsonspine.core.protocols import DiscriminatorConvention
from bsonspine.io.bson_type import BsonType
from bsonspine.serialization.codecs.wrapper import DiscriminatedWrapperCodec
from bsonspine.serialization.context import DecodingContext, EncodingContext
from bsonspine.serialization.registry import CodecRegistry

# Runtime types the declared type's own codec stores without a tag.
_WIDENINGS: dict[type, tuple[type, ...]] = {float: (int,)}


class PolymorphicCodec:
    def __init__(
        self,
        nominal_type: type,
        registry: CodecRegistry,
        convention: DiscriminatorConvention,
        *,
        nullable: bool = False,
    ):
        self._nominal_type = nominal_type
        self._registry = registry
        self._wrapper: DiscriminatedWrapperCodec[Any] = DiscriminatedWrapperCodec(
            convention, registry, nominal_type
        )
        self.nullable = nullable

    @property
    def value_type(self) -> type:
        return self._nominal_type

    def encode(self, context: EncodingContext, value: Any) -> None:
        if value is None:
            if not self.nullable:
                raise self._null_error()
            context.writer.write_null()
            return
        child = context.create_child(self._nominal_type)
        if self._writes_plain(type(value)):
            self._registry.lookup(self._nominal_type).encode(child, value)
        elif isinstance(value, self._nominal_type):
            self._wrapper.encode(child, value)
        else:
            # A tag for a non-subtype would not resolve on the way back in.
            raise CodecError(
                f"Cannot encode a value of type '{type(value).__name__}' "
                f"as '{self._nominal_type.__name__}'",
                context=ErrorContext(
                    nominal_type=self._nominal_type.__name__,
                    actual_type=type(value).__name__,
                ),
            )

    def decode(self, context: DecodingContext) -> Any:
        reader = context.reader
        child = context.create_child(self._nominal_type)
        if reader.get_current_bson_type() == BsonType.NULL:
            if not self.nullable:
                raise self._null_error()
            reader.read_null()
            return None
        if self._wrapper.is_positioned_at_tagged_document(reader):
            return self._wrapper.decode(child)
        return self._registry.lookup(self._nominal_type).decode(child)

    def _writes_plain(self, actual_type: type) -> bool:
        return actual_type is self._nominal_type or actual_type in _WIDENINGS.get(
            self._nominal_type, ()
        )

    def _null_error(self) -> CodecError:
        return CodecError(
            f"None is not allowed for non-optional type '{self._nominal_type.__name__}'",
            context=ErrorContext(nominal_type=self._nominal_type.__name__),
        )
