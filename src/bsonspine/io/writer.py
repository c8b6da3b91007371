"""
Binary document writer.

``BinaryDocumentWriter`` is the write-side counterpart of
``BinaryDocumentReader``: codecs emit structural tokens (start document,
name, value, end document) and the writer lays them out as BSON, back-patching
each document's length prefix when the document is closed.

Element names are buffered by ``write_name`` and emitted together with the
type byte when the value is written, because the type byte precedes the name
on the wire. Inside arrays, names are generated positional indexes.

Examples:
    >>> writer = BinaryDocumentWriter()
    >>> writer.write_start_document()
    >>> writer.write_name("_t")
    >>> writer.write_string("Circle")
    >>> writer.write_end_document()
    >>> writer.to_bytes()
    b'\\x14\\x00\\x00\\x00\\x02_t\\x00\\x07\\x00\\x00\\x00Circle\\x00\\x00'

Tags:
    writer, cursor, bson, binary, bson-spine
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum

from bsonspine.core.errors import CodecError, ErrorContext, InvalidStateError
from bsonspine.io.bson_type import INT32_MAX, INT32_MIN, INT64_MAX, INT64_MIN, BsonType
from bsonspine.io.reader import ContextType


class WriterState(Enum):
    INITIAL = "INITIAL"
    NAME = "NAME"
    VALUE = "VALUE"
    DONE = "DONE"


@dataclass
class _WriteContext:
    kind: ContextType
    start: int
    index: int = 0


class BinaryDocumentWriter:
    """Writes one or more top-level documents into an in-memory buffer."""

    def __init__(self) -> None:
        self._buf = bytearray()
        self._state = WriterState.INITIAL
        self._contexts: list[_WriteContext] = []
        self._pending_name: str | None = None

    @property
    def state(self) -> WriterState:
        return self._state

    def to_bytes(self) -> bytes:
        if self._contexts:
            raise InvalidStateError(
                f"to_bytes called with {len(self._contexts)} unclosed document(s)"
            )
        return bytes(self._buf)

    # ── Structural tokens ────────────────────────────────────────

    def write_name(self, name: str) -> None:
        self._verify_state("write_name", WriterState.NAME)
        if "\x00" in name:
            raise CodecError(
                f"Element name {name!r} contains a NUL byte",
                context=ErrorContext(field_name=name),
            )
        self._pending_name = name
        self._state = WriterState.VALUE

    def write_start_document(self) -> None:
        self._write_element_header(BsonType.DOCUMENT, "write_start_document")
        self._contexts.append(_WriteContext(kind=ContextType.DOCUMENT, start=len(self._buf)))
        self._buf += b"\x00\x00\x00\x00"
        self._state = WriterState.NAME

    def write_end_document(self) -> None:
        self._close_context("write_end_document", ContextType.DOCUMENT, WriterState.NAME)

    def write_start_array(self) -> None:
        self._write_element_header(BsonType.ARRAY, "write_start_array")
        self._contexts.append(_WriteContext(kind=ContextType.ARRAY, start=len(self._buf)))
        self._buf += b"\x00\x00\x00\x00"
        self._state = WriterState.VALUE

    def write_end_array(self) -> None:
        self._close_context("write_end_array", ContextType.ARRAY, WriterState.VALUE)

    # ── Scalar values ────────────────────────────────────────────

    def write_double(self, value: float) -> None:
        self._write_element_header(BsonType.DOUBLE, "write_double")
        self._buf += struct.pack("<d", value)
        self._after_value()

    def write_string(self, value: str) -> None:
        self._write_element_header(BsonType.STRING, "write_string")
        encoded = value.encode("utf-8")
        self._buf += struct.pack("<i", len(encoded) + 1)
        self._buf += encoded
        self._buf.append(0)
        self._after_value()

    def write_int32(self, value: int) -> None:
        if not INT32_MIN <= value <= INT32_MAX:
            raise CodecError(f"Value {value} does not fit in an int32")
        self._write_element_header(BsonType.INT32, "write_int32")
        self._buf += struct.pack("<i", value)
        self._after_value()

    def write_int64(self, value: int) -> None:
        if not INT64_MIN <= value <= INT64_MAX:
            raise CodecError(f"Value {value} does not fit in an int64")
        self._write_element_header(BsonType.INT64, "write_int64")
        self._buf += struct.pack("<q", value)
        self._after_value()

    def write_boolean(self, value: bool) -> None:
        self._write_element_header(BsonType.BOOLEAN, "write_boolean")
        self._buf.append(1 if value else 0)
        self._after_value()

    def write_null(self) -> None:
        self._write_element_header(BsonType.NULL, "write_null")
        self._after_value()

    # ── Internals ────────────────────────────────────────────────

    def _write_element_header(self, bson_type: BsonType, method: str) -> None:
        if self._state in (WriterState.INITIAL, WriterState.DONE):
            if bson_type != BsonType.DOCUMENT:
                raise InvalidStateError(
                    f"{method} cannot write a top-level {bson_type.name}; "
                    "only documents can appear at the top level"
                )
            return
        self._verify_state(method, WriterState.VALUE)
        context = self._contexts[-1]
        if context.kind == ContextType.ARRAY:
            name = str(context.index)
            context.index += 1
        else:
            if self._pending_name is None:
                raise InvalidStateError(f"{method} called before write_name")
            name = self._pending_name
            self._pending_name = None
        self._buf.append(bson_type)
        self._buf += name.encode("utf-8")
        self._buf.append(0)

    def _close_context(self, method: str, kind: ContextType, required: WriterState) -> None:
        if not self._contexts or self._contexts[-1].kind != kind:
            raise InvalidStateError(f"{method} called outside of a {kind.value.lower()}")
        self._verify_state(method, required)
        self._buf.append(0)
        context = self._contexts.pop()
        size = len(self._buf) - context.start
        self._buf[context.start:context.start + 4] = struct.pack("<i", size)
        self._after_value()

    def _after_value(self) -> None:
        if not self._contexts:
            self._state = WriterState.DONE
        elif self._contexts[-1].kind == ContextType.ARRAY:
            self._state = WriterState.VALUE
        else:
            self._state = WriterState.NAME

    def _verify_state(self, method: str, *allowed: WriterState) -> None:
        if self._state not in allowed:
            names = " or ".join(s.value for s in allowed)
            raise InvalidStateError(
                f"{method} can only be called when state is {names}, "
                f"not when state is {self._state.value}"
            )
