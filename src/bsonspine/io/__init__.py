"""Binary document cursors: reader, writer and element types."""

from bsonspine.io.bson_type import BsonType
from bsonspine.io.reader import BinaryDocumentReader, ReaderBookmark, ReaderState
from bsonspine.io.writer import BinaryDocumentWriter, WriterState

__all__ = [
    "BsonType",
    "BinaryDocumentReader",
    "BinaryDocumentWriter",
    "ReaderBookmark",
    "ReaderState",
    "WriterState",
]
