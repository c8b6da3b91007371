"""Encoding and decoding contexts.

A context pairs a cursor with the nominal type expected at the current
position. Codecs that delegate to other codecs create a child context for
the nested value's nominal type.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from bsonspine.io.reader import BinaryDocumentReader
from bsonspine.io.writer import BinaryDocumentWriter

if TYPE_CHECKING:
    from bsonspine.core.protocols import Codec


@dataclass(frozen=True)
class EncodingContext:
    writer: BinaryDocumentWriter
    nominal_type: type = object

    def create_child(self, nominal_type: type) -> EncodingContext:
        return replace(self, nominal_type=nominal_type)

    def encode_with_child_context(self, codec: Codec, value: Any) -> None:
        codec.encode(self.create_child(codec.value_type), value)


@dataclass(frozen=True)
class DecodingContext:
    reader: BinaryDocumentReader
    nominal_type: type = object

    def create_child(self, nominal_type: type) -> DecodingContext:
        return replace(self, nominal_type=nominal_type)

    def decode_with_child_context(self, codec: Codec) -> Any:
        return codec.decode(self.create_child(codec.value_type))
