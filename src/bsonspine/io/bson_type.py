"""Element type bytes of the binary document format (BSON subset)."""

from __future__ import annotations

from enum import IntEnum


class BsonType(IntEnum):
    """Type byte that precedes every element of a document or array."""

    END_OF_DOCUMENT = 0x00
    DOUBLE = 0x01
    STRING = 0x02
    DOCUMENT = 0x03
    ARRAY = 0x04
    BOOLEAN = 0x08
    NULL = 0x0A
    INT32 = 0x10
    INT64 = 0x12


# Byte size of fixed-width element values.
FIXED_SIZES: dict[BsonType, int] = {
    BsonType.DOUBLE: 8,
    BsonType.BOOLEAN: 1,
    BsonType.NULL: 0,
    BsonType.INT32: 4,
    BsonType.INT64: 8,
}

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# Smallest possible document: int32 length + terminator.
MIN_DOCUMENT_SIZE = 5
