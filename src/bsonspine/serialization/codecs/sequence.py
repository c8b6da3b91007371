"""Typed list codec: an array whose items share one item codec."""

from __future__ import annotations

from typing import Any

from bsonspine.core.errors import CodecError
from bsonspine.core.protocols import Codec
from bsonspine.io.bson_type import BsonType
from bsonspine.serialization.context import DecodingContext, EncodingContext


class ListCodec:
    value_type = list

    def __init__(self, item_codec: Codec, *, nullable: bool = False):
        self._item_codec = item_codec
        self.nullable = nullable

    @property
    def item_codec(self) -> Codec:
        return self._item_codec

    def encode(self, context: EncodingContext, value: list[Any] | None) -> None:
        writer = context.writer
        if value is None:
            if not self.nullable:
                raise CodecError("None is not allowed for a non-optional list")
            writer.write_null()
            return
        if not isinstance(value, (list, tuple)):
            raise CodecError(f"ListCodec cannot encode a value of type '{type(value).__name__}'")
        writer.write_start_array()
        for item in value:
            context.encode_with_child_context(self._item_codec, item)
        writer.write_end_array()

    def decode(self, context: DecodingContext) -> list[Any] | None:
        reader = context.reader
        bson_type = reader.get_current_bson_type()
        if bson_type == BsonType.NULL and self.nullable:
            reader.read_null()
            return None
        if bson_type != BsonType.ARRAY:
            raise CodecError(f"ListCodec cannot decode a {bson_type.name} element (expected ARRAY)")
        items: list[Any] = []
        reader.read_start_array()
        while reader.read_bson_type() != BsonType.END_OF_DOCUMENT:
            items.append(context.decode_with_child_context(self._item_codec))
        reader.read_end_array()
        return items
