"""Codecs for scalar Python types."""

from __future__ import annotations

from bsonspine.core.errors import CodecError, ErrorContext
from bsonspine.io.bson_type import INT32_MAX, INT32_MIN, BsonType
from bsonspine.io.reader import BinaryDocumentReader
from bsonspine.serialization.context import DecodingContext, EncodingContext


def _expect(reader: BinaryDocumentReader, codec: str, *allowed: BsonType) -> BsonType:
    bson_type = reader.get_current_bson_type()
    if bson_type not in allowed:
        names = ", ".join(t.name for t in allowed)
        raise CodecError(
            f"{codec} cannot decode a {bson_type.name} element (expected {names})",
            context=ErrorContext(
                field_name=reader.current_name,
                expected=names,
                actual=bson_type.name,
                position=reader.position,
            ),
        )
    return bson_type


def _check_instance(codec: str, value: object, *types: type) -> None:
    if not isinstance(value, types):
        raise CodecError(
            f"{codec} cannot encode a value of type '{type(value).__name__}'",
            context=ErrorContext(actual_type=type(value).__name__),
        )


class StringCodec:
    value_type = str

    def encode(self, context: EncodingContext, value: str) -> None:
        _check_instance("StringCodec", value, str)
        context.writer.write_string(value)

    def decode(self, context: DecodingContext) -> str:
        _expect(context.reader, "StringCodec", BsonType.STRING)
        return context.reader.read_string()


class IntCodec:
    """Writes int32 when the value fits, int64 otherwise; reads either."""

    value_type = int

    def encode(self, context: EncodingContext, value: int) -> None:
        if isinstance(value, bool):
            raise CodecError("IntCodec cannot encode a value of type 'bool'")
        _check_instance("IntCodec", value, int)
        if INT32_MIN <= value <= INT32_MAX:
            context.writer.write_int32(value)
        else:
            context.writer.write_int64(value)

    def decode(self, context: DecodingContext) -> int:
        reader = context.reader
        if _expect(reader, "IntCodec", BsonType.INT32, BsonType.INT64) == BsonType.INT32:
            return reader.read_int32()
        return reader.read_int64()


class DoubleCodec:
    value_type = float

    def encode(self, context: EncodingContext, value: float) -> None:
        if isinstance(value, bool):
            raise CodecError("DoubleCodec cannot encode a value of type 'bool'")
        _check_instance("DoubleCodec", value, float, int)
        context.writer.write_double(float(value))

    def decode(self, context: DecodingContext) -> float:
        reader = context.reader
        bson_type = _expect(reader, "DoubleCodec", BsonType.DOUBLE, BsonType.INT32, BsonType.INT64)
        if bson_type == BsonType.INT32:
            return float(reader.read_int32())
        if bson_type == BsonType.INT64:
            return float(reader.read_int64())
        return reader.read_double()


class BooleanCodec:
    value_type = bool

    def encode(self, context: EncodingContext, value: bool) -> None:
        _check_instance("BooleanCodec", value, bool)
        context.writer.write_boolean(value)

    def decode(self, context: DecodingContext) -> bool:
        _expect(context.reader, "BooleanCodec", BsonType.BOOLEAN)
        return context.reader.read_boolean()
