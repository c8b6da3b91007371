"""Untyped value codec.

Encodes plain Python data (None, bool, int, float, str, list, tuple, dict)
by inspecting each value, and decodes whatever element is at the reader into
the matching Python type. Discriminators are written and read through this
codec, because their shape is opaque to the rest of the codec layer.
"""

from __future__ import annotations

from typing import Any

from bsonspine.core.errors import CodecError, ErrorContext
from bsonspine.io.bson_type import INT32_MAX, INT32_MIN, BsonType
from bsonspine.io.reader import BinaryDocumentReader
from bsonspine.io.writer import BinaryDocumentWriter
from bsonspine.serialization.context import DecodingContext, EncodingContext


class ValueCodec:
    def __init__(self, value_type: type = object):
        self._value_type = value_type

    @property
    def value_type(self) -> type:
        return self._value_type

    def encode(self, context: EncodingContext, value: Any) -> None:
        self._write(context.writer, value)

    def decode(self, context: DecodingContext) -> Any:
        return self._read(context.reader)

    def _write(self, writer: BinaryDocumentWriter, value: Any) -> None:
        if value is None:
            writer.write_null()
        elif isinstance(value, bool):
            writer.write_boolean(value)
        elif isinstance(value, int):
            if INT32_MIN <= value <= INT32_MAX:
                writer.write_int32(value)
            else:
                writer.write_int64(value)
        elif isinstance(value, float):
            writer.write_double(value)
        elif isinstance(value, str):
            writer.write_string(value)
        elif isinstance(value, (list, tuple)):
            writer.write_start_array()
            for item in value:
                self._write(writer, item)
            writer.write_end_array()
        elif isinstance(value, dict):
            writer.write_start_document()
            for key, item in value.items():
                if not isinstance(key, str):
                    raise CodecError(
                        f"Document keys must be strings, not {type(key).__name__}",
                        context=ErrorContext(field_name=repr(key)),
                    )
                writer.write_name(key)
                self._write(writer, item)
            writer.write_end_document()
        else:
            raise CodecError(
                f"Cannot encode a value of type '{type(value).__name__}' without a registered codec",
                context=ErrorContext(actual_type=type(value).__name__),
            )

    def _read(self, reader: BinaryDocumentReader) -> Any:
        bson_type = reader.get_current_bson_type()
        if bson_type == BsonType.DOCUMENT:
            result: dict[str, Any] = {}
            reader.read_start_document()
            while reader.read_bson_type() != BsonType.END_OF_DOCUMENT:
                name = reader.read_name()
                result[name] = self._read(reader)
            reader.read_end_document()
            return result
        if bson_type == BsonType.ARRAY:
            items: list[Any] = []
            reader.read_start_array()
            while reader.read_bson_type() != BsonType.END_OF_DOCUMENT:
                items.append(self._read(reader))
            reader.read_end_array()
            return items
        if bson_type == BsonType.DOUBLE:
            return reader.read_double()
        if bson_type == BsonType.STRING:
            return reader.read_string()
        if bson_type == BsonType.BOOLEAN:
            return reader.read_boolean()
        if bson_type == BsonType.NULL:
            reader.read_null()
            return None
        if bson_type == BsonType.INT32:
            return reader.read_int32()
        if bson_type == BsonType.INT64:
            return reader.read_int64()
        raise CodecError(f"Cannot decode a {bson_type.name} element as a value")
