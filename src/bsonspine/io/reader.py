"""
Forward-only binary document reader with bookmarks.

``BinaryDocumentReader`` walks a BSON byte stream one structural token at a
time: element type, element name, value, end of document. It never builds
an in-memory tree; codecs pull exactly the tokens they need.

The reader also supports speculative reads. ``get_bookmark()`` captures the
full reader state and ``return_to_bookmark()`` undoes every read performed
since. ``bookmarked()`` wraps the pair in a context manager so the restore
runs on every exit path, including exceptions.

Manifesto:
    Polymorphic decoding needs to look before it leaps: "is this a tagged
    document?" must be answerable without copying the document and without
    disturbing callers who then take the other path.

    - **Token-level API:** Codecs drive the reader; the reader validates order
    - **Explicit state machine:** Calls out of order raise InvalidStateError
    - **Corruption is loud:** Truncated or malformed bytes raise FormatError
      subclasses, never a generic struct.error
    - **Rewindable:** Bookmarks are immutable snapshots

Architecture:
    ::

        State machine (document context):

          INITIAL ──read_bson_type──▶ VALUE ──read_start_document──▶ TYPE
                                                                     │
              ┌──────────────── read_bson_type ◀─────────────────────┤
              ▼                                                      │
            NAME ──read_name──▶ VALUE ──read_*/skip_value────────────┘
              │
          (type byte 0)
              ▼
        END_OF_DOCUMENT ──read_end_document──▶ TYPE (nested) / DONE (top)

        Array context: read_bson_type also consumes the index name, so the
        state goes straight to VALUE.

Examples:
    >>> reader = BinaryDocumentReader(data)
    >>> reader.read_start_document()
    >>> with reader.bookmarked():
    ...     reader.find_element("_t")
    True
    >>> reader.read_bson_type()  # unaffected by the lookahead above
    <BsonType.STRING: 2>

Tags:
    reader, cursor, bookmark, bson, binary, bson-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import struct
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum

from bsonspine.core.errors import (
    CorruptDocumentError,
    DocumentTruncatedError,
    ErrorContext,
    InvalidStateError,
)
from bsonspine.io.bson_type import FIXED_SIZES, MIN_DOCUMENT_SIZE, BsonType


class ReaderState(Enum):
    INITIAL = "INITIAL"
    TYPE = "TYPE"
    NAME = "NAME"
    VALUE = "VALUE"
    END_OF_DOCUMENT = "END_OF_DOCUMENT"
    END_OF_ARRAY = "END_OF_ARRAY"
    DONE = "DONE"


class ContextType(Enum):
    DOCUMENT = "DOCUMENT"
    ARRAY = "ARRAY"


@dataclass(frozen=True)
class _ReadContext:
    kind: ContextType
    start: int
    end: int


@dataclass(frozen=True)
class ReaderBookmark:
    """Opaque snapshot of a reader's position and state."""

    position: int
    state: ReaderState
    current_type: BsonType | None
    current_name: str | None
    contexts: tuple[_ReadContext, ...]


class BinaryDocumentReader:
    """Reads a stream of one or more top-level documents."""

    def __init__(self, data: bytes | bytearray | memoryview):
        self._data = bytes(data)
        self._pos = 0
        self._state = ReaderState.INITIAL
        self._current_type: BsonType | None = None
        self._current_name: str | None = None
        self._contexts: list[_ReadContext] = []

    # ── Introspection ────────────────────────────────────────────

    @property
    def position(self) -> int:
        return self._pos

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def current_name(self) -> str | None:
        return self._current_name

    def is_at_end_of_stream(self) -> bool:
        return self._pos >= len(self._data)

    # ── Bookmarks ────────────────────────────────────────────────

    def get_bookmark(self) -> ReaderBookmark:
        return ReaderBookmark(
            position=self._pos,
            state=self._state,
            current_type=self._current_type,
            current_name=self._current_name,
            contexts=tuple(self._contexts),
        )

    def return_to_bookmark(self, bookmark: ReaderBookmark) -> None:
        self._pos = bookmark.position
        self._state = bookmark.state
        self._current_type = bookmark.current_type
        self._current_name = bookmark.current_name
        self._contexts = list(bookmark.contexts)

    @contextmanager
    def bookmarked(self) -> Iterator[ReaderBookmark]:
        """Run a block of speculative reads, then rewind unconditionally.

        Example:
            >>> with reader.bookmarked():
            ...     reader.read_start_document()
            ...     first = reader.read_bson_type()
            >>> # reader is back where it was
        """
        bookmark = self.get_bookmark()
        try:
            yield bookmark
        finally:
            self.return_to_bookmark(bookmark)

    # ── Structural tokens ────────────────────────────────────────

    def get_current_bson_type(self) -> BsonType:
        """Type of the element at the current position, reading it if needed."""
        if self._state in (ReaderState.INITIAL, ReaderState.DONE, ReaderState.TYPE):
            self.read_bson_type()
        if self._current_type is None:
            raise InvalidStateError("get_current_bson_type called before any element was read")
        return self._current_type

    def read_bson_type(self) -> BsonType:
        if self._state in (ReaderState.INITIAL, ReaderState.DONE):
            if self._state == ReaderState.DONE and self.is_at_end_of_stream():
                raise InvalidStateError("read_bson_type called at the end of the stream")
            # Top-level values are always documents.
            self._current_type = BsonType.DOCUMENT
            self._current_name = None
            self._state = ReaderState.VALUE
            return self._current_type

        self._verify_state("read_bson_type", ReaderState.TYPE)
        context = self._contexts[-1]
        type_position = self._pos
        type_byte = self._unpack("<B", 1)

        if type_byte == 0:
            if self._pos != context.end:
                raise self._size_mismatch(context)
            self._current_type = BsonType.END_OF_DOCUMENT
            self._current_name = None
            if context.kind == ContextType.ARRAY:
                self._state = ReaderState.END_OF_ARRAY
            else:
                self._state = ReaderState.END_OF_DOCUMENT
            return self._current_type

        try:
            bson_type = BsonType(type_byte)
        except ValueError:
            raise CorruptDocumentError(
                f"Unknown element type 0x{type_byte:02x} at position {type_position}",
                context=ErrorContext(position=type_position, actual=f"0x{type_byte:02x}"),
            ) from None

        self._current_type = bson_type
        if context.kind == ContextType.ARRAY:
            # Array element names are positional indexes; callers never see them.
            self._current_name = self._read_cstring()
            self._state = ReaderState.VALUE
        else:
            self._current_name = None
            self._state = ReaderState.NAME
        return bson_type

    def read_name(self) -> str:
        self._verify_state("read_name", ReaderState.NAME)
        self._current_name = self._read_cstring()
        self._state = ReaderState.VALUE
        return self._current_name

    def skip_value(self) -> None:
        self._verify_state("skip_value", ReaderState.VALUE)
        bson_type = self._current_type
        if bson_type in (BsonType.DOCUMENT, BsonType.ARRAY):
            start = self._pos
            size = self._unpack("<i", 4)
            self._check_document_size(start, size)
            self._pos = start + size
        elif bson_type == BsonType.STRING:
            length = self._unpack("<i", 4)
            if length < 1:
                raise CorruptDocumentError(
                    f"Invalid string length {length} at position {self._pos - 4}",
                    context=ErrorContext(position=self._pos - 4),
                )
            self._take(length)
        else:
            self._take(FIXED_SIZES[bson_type])
        self._after_value()

    def find_element(self, name: str) -> bool:
        """Advance to the element called ``name`` in the current document.

        On success the reader is positioned at that element's value. On
        failure it is at the end of the document.
        """
        while self.read_bson_type() != BsonType.END_OF_DOCUMENT:
            if self.read_name() == name:
                return True
            self.skip_value()
        return False

    def read_start_document(self) -> None:
        self._verify_value("read_start_document", BsonType.DOCUMENT)
        self._push_context(ContextType.DOCUMENT)

    def read_end_document(self) -> None:
        self._pop_context("read_end_document", ContextType.DOCUMENT, ReaderState.END_OF_DOCUMENT)

    def read_start_array(self) -> None:
        self._verify_value("read_start_array", BsonType.ARRAY)
        self._push_context(ContextType.ARRAY)

    def read_end_array(self) -> None:
        self._pop_context("read_end_array", ContextType.ARRAY, ReaderState.END_OF_ARRAY)

    # ── Scalar values ────────────────────────────────────────────

    def read_double(self) -> float:
        self._verify_value("read_double", BsonType.DOUBLE)
        value = self._unpack("<d", 8)
        self._after_value()
        return value

    def read_string(self) -> str:
        self._verify_value("read_string", BsonType.STRING)
        start = self._pos
        length = self._unpack("<i", 4)
        if length < 1:
            raise CorruptDocumentError(
                f"Invalid string length {length} at position {start}",
                context=ErrorContext(position=start),
            )
        raw = self._take(length)
        if raw[-1] != 0:
            raise CorruptDocumentError(
                f"String at position {start} is not null-terminated",
                context=ErrorContext(position=start),
            )
        value = self._decode_utf8(raw[:-1], start)
        self._after_value()
        return value

    def read_int32(self) -> int:
        self._verify_value("read_int32", BsonType.INT32)
        value = self._unpack("<i", 4)
        self._after_value()
        return value

    def read_int64(self) -> int:
        self._verify_value("read_int64", BsonType.INT64)
        value = self._unpack("<q", 8)
        self._after_value()
        return value

    def read_boolean(self) -> bool:
        self._verify_value("read_boolean", BsonType.BOOLEAN)
        start = self._pos
        raw = self._unpack("<B", 1)
        if raw not in (0, 1):
            raise CorruptDocumentError(
                f"Invalid boolean byte 0x{raw:02x} at position {start}",
                context=ErrorContext(position=start),
            )
        self._after_value()
        return raw == 1

    def read_null(self) -> None:
        self._verify_value("read_null", BsonType.NULL)
        self._after_value()

    # ── Internals ────────────────────────────────────────────────

    def _limit(self) -> int:
        """End of the innermost open document, or of the stream at top level."""
        return self._contexts[-1].end if self._contexts else len(self._data)

    def _overrun(self, position: int, end: int) -> CorruptDocumentError:
        context = self._contexts[-1]
        return CorruptDocumentError(
            f"Read at position {position} runs to {end}, past the end of the "
            f"{context.kind.value.lower()} starting at {context.start} (ends at {context.end})",
            context=ErrorContext(position=position, actual=str(end)),
        )

    def _size_mismatch(self, context: _ReadContext) -> CorruptDocumentError:
        return CorruptDocumentError(
            f"{context.kind.value.title()} starting at position {context.start} ended at "
            f"{self._pos}, expected {context.end}",
            context=ErrorContext(position=context.start),
        )

    def _take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise DocumentTruncatedError(
                f"Input ended early: need {n} bytes at position {self._pos}, "
                f"have {len(self._data) - self._pos}",
                context=ErrorContext(position=self._pos),
            )
        if end > self._limit():
            raise self._overrun(self._pos, end)
        out = self._data[self._pos:end]
        self._pos = end
        return out

    def _unpack(self, fmt: str, n: int):
        return struct.unpack(fmt, self._take(n))[0]

    def _read_cstring(self) -> str:
        start = self._pos
        end = self._data.find(b"\x00", start)
        if end < 0:
            raise DocumentTruncatedError(
                f"Unterminated element name at position {start}",
                context=ErrorContext(position=start),
            )
        if end + 1 > self._limit():
            raise self._overrun(start, end + 1)
        self._pos = end + 1
        return self._decode_utf8(self._data[start:end], start)

    @staticmethod
    def _decode_utf8(raw: bytes, position: int) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptDocumentError(
                f"Invalid UTF-8 at position {position}",
                context=ErrorContext(position=position),
                cause=e,
            ) from e

    def _check_document_size(self, start: int, size: int) -> None:
        if size < MIN_DOCUMENT_SIZE:
            raise CorruptDocumentError(
                f"Invalid document size {size} at position {start}",
                context=ErrorContext(position=start, actual=str(size)),
            )
        if start + size > len(self._data):
            raise DocumentTruncatedError(
                f"Document at position {start} declares {size} bytes, "
                f"only {len(self._data) - start} available",
                context=ErrorContext(position=start, actual=str(size)),
            )
        if start + size > self._limit():
            raise self._overrun(start, start + size)

    def _push_context(self, kind: ContextType) -> None:
        start = self._pos
        size = self._unpack("<i", 4)
        self._check_document_size(start, size)
        self._contexts.append(_ReadContext(kind=kind, start=start, end=start + size))
        self._state = ReaderState.TYPE

    def _pop_context(self, method: str, kind: ContextType, end_state: ReaderState) -> None:
        if not self._contexts or self._contexts[-1].kind != kind:
            raise InvalidStateError(f"{method} called outside of a {kind.value.lower()}")
        if self._state == ReaderState.TYPE:
            self.read_bson_type()
        self._verify_state(method, end_state)
        context = self._contexts.pop()
        if self._pos != context.end:
            raise self._size_mismatch(context)
        self._after_value()

    def _after_value(self) -> None:
        self._state = ReaderState.TYPE if self._contexts else ReaderState.DONE

    def _verify_state(self, method: str, *allowed: ReaderState) -> None:
        if self._state not in allowed:
            names = " or ".join(s.value for s in allowed)
            raise InvalidStateError(
                f"{method} can only be called when state is {names}, "
                f"not when state is {self._state.value}"
            )

    def _verify_value(self, method: str, required: BsonType) -> None:
        if self._state in (ReaderState.INITIAL, ReaderState.DONE):
            self.read_bson_type()
        self._verify_state(method, ReaderState.VALUE)
        if self._current_type != required:
            actual = self._current_type.name if self._current_type is not None else "NONE"
            raise InvalidStateError(
                f"{method} can only be called when the current type is "
                f"{required.name}, not when it is {actual}"
            )
