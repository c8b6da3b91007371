"""
Test support utilities for bson-spine tests.

Helpers for building raw documents with a known field order and for
positioning a reader at a field value, which most wrapper and probe tests
need before they can exercise anything.
"""

from __future__ import annotations

from typing import Any

from bsonspine.io.bson_type import BsonType
from bsonspine.io.reader import BinaryDocumentReader
from bsonspine.io.writer import BinaryDocumentWriter
from bsonspine.serialization.codecs.value import ValueCodec
from bsonspine.serialization.context import EncodingContext


def encode_document(document: dict[str, Any]) -> bytes:
    """Encode a plain dict as one top-level document, preserving key order."""
    writer = BinaryDocumentWriter()
    ValueCodec().encode(EncodingContext(writer), document)
    return writer.to_bytes()


def encode_documents(*documents: dict[str, Any]) -> bytes:
    """Encode several top-level documents back to back."""
    return b"".join(encode_document(d) for d in documents)


def reader_at_field(data: bytes, name: str) -> BinaryDocumentReader:
    """Open the top-level document and stop at the value of field ``name``."""
    reader = BinaryDocumentReader(data)
    reader.read_start_document()
    if not reader.find_element(name):
        raise AssertionError(f"field {name!r} not found")
    return reader


def reader_state(reader: BinaryDocumentReader) -> tuple:
    """Comparable snapshot of everything a bookmark restores."""
    bookmark = reader.get_bookmark()
    return (
        bookmark.position,
        bookmark.state,
        bookmark.current_type,
        bookmark.current_name,
        bookmark.contexts,
    )


def next_field(reader: BinaryDocumentReader) -> str | None:
    """Read the next element name of the current document, or None at its end."""
    if reader.read_bson_type() == BsonType.END_OF_DOCUMENT:
        return None
    return reader.read_name()
