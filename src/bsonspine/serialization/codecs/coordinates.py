"""GeoJSON 3D geographic coordinates.

A position is stored as an array of exactly three doubles in
(longitude, latitude, altitude) order. A ``null`` element decodes to
``None``.
"""

from __future__ import annotations

from dataclasses import dataclass

from bsonspine.core.errors import StructuralFormatError
from bsonspine.io.bson_type import BsonType
from bsonspine.serialization.codecs.primitives import DoubleCodec
from bsonspine.serialization.context import DecodingContext, EncodingContext

_double_codec = DoubleCodec()


@dataclass(frozen=True)
class Coordinates3D:
    longitude: float
    latitude: float
    altitude: float


class Coordinates3DCodec:
    value_type = Coordinates3D

    def encode(self, context: EncodingContext, value: Coordinates3D | None) -> None:
        writer = context.writer
        if value is None:
            writer.write_null()
            return
        writer.write_start_array()
        writer.write_double(value.longitude)
        writer.write_double(value.latitude)
        writer.write_double(value.altitude)
        writer.write_end_array()

    def decode(self, context: DecodingContext) -> Coordinates3D | None:
        reader = context.reader
        if reader.get_current_bson_type() == BsonType.NULL:
            reader.read_null()
            return None

        reader.read_start_array()
        longitude = context.decode_with_child_context(_double_codec)
        latitude = context.decode_with_child_context(_double_codec)
        altitude = context.decode_with_child_context(_double_codec)
        if reader.read_bson_type() != BsonType.END_OF_DOCUMENT:
            raise StructuralFormatError(
                "Expected 3D coordinates to be an array of exactly three numbers.",
                expected="3 elements",
                actual="more than 3 elements",
            )
        reader.read_end_array()
        return Coordinates3D(longitude, latitude, altitude)
