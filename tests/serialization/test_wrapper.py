"""Tests for the discriminated wrapper codec.

Covers:
- Encoding as a two-field ``{_t, _v}`` document
- Strict decode of the wrapper shape (order, count, document-ness)
- The side-effect-free tagged-document probe
- Propagation of resolution, lookup and corruption errors
"""

from __future__ import annotations

import struct
from concurrent.futures import ThreadPoolExecutor

import pytest
from structlog.testing import capture_logs

from bsonspine.core.errors import (
    CodecLookupError,
    CorruptDocumentError,
    DocumentTruncatedError,
    StructuralFormatError,
    UnknownDiscriminatorError,
)
from bsonspine.core.settings import DiscriminatorConfig
from bsonspine.io.reader import BinaryDocumentReader, ReaderState
from bsonspine.io.writer import BinaryDocumentWriter
from bsonspine.serialization.codecs import DiscriminatedWrapperCodec, ValueCodec
from bsonspine.serialization.context import DecodingContext, EncodingContext
from bsonspine.serialization.conventions import ScalarDiscriminatorConvention
from tests._support import encode_document, reader_at_field, reader_state
from tests._support.shapes import Circle, RoundedSquare, Shape, Square

CIRCLE = {"_t": "Circle", "_v": {"radius": 1.5}}


class Opaque:
    """Registered discriminator, but no codec."""


def _encode(codec: DiscriminatedWrapperCodec, value, nominal_type: type = Shape) -> bytes:
    writer = BinaryDocumentWriter()
    codec.encode(EncodingContext(writer, nominal_type), value)
    return writer.to_bytes()


def _decode(codec: DiscriminatedWrapperCodec, data: bytes, nominal_type: type = Shape):
    return codec.decode(DecodingContext(BinaryDocumentReader(data), nominal_type))


def _plain(data: bytes):
    return ValueCodec().decode(DecodingContext(BinaryDocumentReader(data)))


# =============================================================================
# Encode
# =============================================================================


class TestEncode:
    def test_subclass_under_base_type(self, wrapper):
        """Circle under nominal Shape becomes {_t: "Circle", _v: <payload>}."""
        data = _encode(wrapper, Circle(radius=1.5))
        assert data == encode_document(CIRCLE)

    def test_exactly_two_fields_in_order(self, wrapper):
        document = _plain(_encode(wrapper, Square(side=2.0)))
        assert list(document) == ["_t", "_v"]
        assert document == {"_t": "Square", "_v": {"side": 2.0}}

    def test_custom_discriminator_field_name(self, discriminators, registry):
        convention = ScalarDiscriminatorConvention(DiscriminatorConfig("kind"), discriminators)
        codec = DiscriminatedWrapperCodec(convention, registry, Shape)
        document = _plain(_encode(codec, Circle(radius=1.0)))
        assert list(document) == ["kind", "_v"]
        assert document["kind"] == "Circle"

    def test_hierarchical_discriminator(self, hierarchical_convention, registry):
        codec = DiscriminatedWrapperCodec(hierarchical_convention, registry, Shape)
        document = _plain(_encode(codec, RoundedSquare(side=3.0, corner_radius=0.5)))
        assert document == {
            "_t": ["Shape", "Square", "RoundedSquare"],
            "_v": {"side": 3.0, "corner_radius": 0.5},
        }

    def test_non_document_payload(self, convention, registry):
        """Scalars and arrays have nowhere else to carry a type tag."""
        codec = DiscriminatedWrapperCodec(convention, registry)
        assert _plain(_encode(codec, 42, object)) == {"_t": "int", "_v": 42}
        assert _plain(_encode(codec, [1, "a"], object)) == {"_t": "list", "_v": [1, "a"]}

    def test_missing_codec_fails_before_writing(self, convention, registry, discriminators):
        discriminators.register(Opaque)
        codec = DiscriminatedWrapperCodec(convention, registry)
        writer = BinaryDocumentWriter()
        with pytest.raises(CodecLookupError):
            codec.encode(EncodingContext(writer, object), Opaque())
        assert writer.to_bytes() == b""


# =============================================================================
# Decode
# =============================================================================


class TestDecode:
    def test_decodes_actual_type(self, wrapper):
        value = _decode(wrapper, encode_document(CIRCLE))
        assert type(value) is Circle
        assert value == Circle(radius=1.5)

    def test_reader_consumes_whole_document(self, wrapper):
        reader = BinaryDocumentReader(encode_document(CIRCLE))
        wrapper.decode(DecodingContext(reader, Shape))
        assert reader.state == ReaderState.DONE
        assert reader.is_at_end_of_stream()

    def test_nested_field_leaves_reader_after_value(self, wrapper):
        data = encode_document({"shape": CIRCLE, "after": "x"})
        reader = reader_at_field(data, "shape")
        assert wrapper.decode(DecodingContext(reader, Shape)) == Circle(radius=1.5)
        assert reader.find_element("after")
        assert reader.read_string() == "x"

    def test_hierarchical_discriminator_resolves_by_last_element(self, wrapper):
        data = encode_document(
            {"_t": ["Shape", "Square", "RoundedSquare"],
             "_v": {"side": 3.0, "corner_radius": 0.5}}
        )
        assert _decode(wrapper, data) == RoundedSquare(side=3.0, corner_radius=0.5)

    def test_swapped_order(self, wrapper):
        """_v before _t is rejected and names _t as the expected first field."""
        data = encode_document({"_v": {"radius": 1.5}, "_t": "Circle"})
        with pytest.raises(StructuralFormatError) as exc_info:
            _decode(wrapper, data)
        error = exc_info.value
        assert "'_t'" in error.message
        assert "'_v'" in error.message
        assert "first field" in error.message
        assert error.expected == "_t"
        assert error.actual == "_v"

    def test_extra_field(self, wrapper):
        data = encode_document({"_t": "Circle", "_v": {"radius": 1.5}, "extra": 1})
        with pytest.raises(StructuralFormatError, match="exactly two fields") as exc_info:
            _decode(wrapper, data)
        assert exc_info.value.actual == "extra"

    def test_missing_payload(self, wrapper):
        with pytest.raises(StructuralFormatError, match="second field") as exc_info:
            _decode(wrapper, encode_document({"_t": "Circle"}))
        assert exc_info.value.expected == "_v"
        assert exc_info.value.actual == "end of document"

    def test_wrong_payload_name(self, wrapper):
        data = encode_document({"_t": "Circle", "value": {"radius": 1.5}})
        with pytest.raises(StructuralFormatError) as exc_info:
            _decode(wrapper, data)
        assert exc_info.value.message == (
            "Expected the second field of a discriminated wrapper to be '_v', not: 'value'."
        )

    def test_wrong_first_field(self, wrapper):
        data = encode_document({"type": "Circle", "_v": {"radius": 1.5}})
        with pytest.raises(StructuralFormatError) as exc_info:
            _decode(wrapper, data)
        assert exc_info.value.message == (
            "Expected the first field of a discriminated wrapper to be '_t', not: 'type'."
        )

    def test_empty_document(self, wrapper):
        with pytest.raises(StructuralFormatError, match="end of document"):
            _decode(wrapper, encode_document({}))

    def test_non_document_value(self, wrapper):
        reader = reader_at_field(encode_document({"shape": "Circle"}), "shape")
        with pytest.raises(StructuralFormatError, match="to be a document, not: STRING"):
            wrapper.decode(DecodingContext(reader, Shape))

    def test_error_context(self, wrapper):
        data = encode_document({"_v": {}, "_t": "Circle"})
        with pytest.raises(StructuralFormatError) as exc_info:
            _decode(wrapper, data)
        context = exc_info.value.context
        assert context.nominal_type == "Shape"
        assert context.position is not None

    def test_rejection_is_logged(self, wrapper):
        with capture_logs() as logs:
            with pytest.raises(StructuralFormatError):
                _decode(wrapper, encode_document({"_t": "Circle"}))
        rejected = [e for e in logs if e["event"] == "discriminated_wrapper_rejected"]
        assert rejected
        assert rejected[0]["expected"] == "_v"
        assert rejected[0]["log_level"] == "debug"

    def test_unknown_discriminator(self, wrapper):
        data = encode_document({"_t": "Triangle", "_v": {}})
        with pytest.raises(UnknownDiscriminatorError):
            _decode(wrapper, data)

    def test_discriminator_outside_nominal_type(self, wrapper):
        """A registered type that is not a Shape does not resolve under Shape."""
        data = encode_document({"_t": "Drawing", "_v": {"title": "t", "shapes": []}})
        with pytest.raises(UnknownDiscriminatorError):
            _decode(wrapper, data)

    def test_missing_codec(self, convention, registry, discriminators):
        discriminators.register(Opaque)
        codec = DiscriminatedWrapperCodec(convention, registry)
        data = encode_document({"_t": "Opaque", "_v": {}})
        with pytest.raises(CodecLookupError):
            _decode(codec, data, object)

    def test_custom_field_name_rejects_default(self, discriminators, registry):
        convention = ScalarDiscriminatorConvention(DiscriminatorConfig("kind"), discriminators)
        codec = DiscriminatedWrapperCodec(convention, registry, Shape)
        with pytest.raises(StructuralFormatError, match="'kind'"):
            _decode(codec, encode_document(CIRCLE))


class TestRoundTrip:
    @pytest.mark.parametrize(
        "value",
        [
            Circle(radius=0.25),
            Square(side=10.0),
            RoundedSquare(side=1.0, corner_radius=0.1),
            Shape(),
        ],
    )
    def test_shapes(self, wrapper, value):
        decoded = _decode(wrapper, _encode(wrapper, value))
        assert type(decoded) is type(value)
        assert decoded == value

    @pytest.mark.parametrize("value", [7, 2**40, 1.5, "text", True, [1, [2]], {"k": None}])
    def test_builtins_under_object(self, convention, registry, value):
        codec = DiscriminatedWrapperCodec(convention, registry)
        decoded = _decode(codec, _encode(codec, value, object), object)
        assert type(decoded) is type(value)
        assert decoded == value

    def test_hierarchical_round_trip(self, hierarchical_convention, registry):
        codec = DiscriminatedWrapperCodec(hierarchical_convention, registry, Shape)
        value = RoundedSquare(side=2.0, corner_radius=0.3)
        assert _decode(codec, _encode(codec, value)) == value

    def test_shared_codec_across_threads(self, wrapper):
        """One codec instance, one reader per call."""
        values = [Circle(radius=float(i)) for i in range(50)]
        payloads = [_encode(wrapper, v) for v in values]
        with ThreadPoolExecutor(max_workers=8) as pool:
            decoded = list(pool.map(lambda data: _decode(wrapper, data), payloads))
        assert decoded == values


# =============================================================================
# Probe
# =============================================================================


class TestIsPositionedAtTaggedDocument:
    def test_tagged_top_level_document(self, wrapper):
        reader = BinaryDocumentReader(encode_document(CIRCLE))
        before = reader_state(reader)
        assert wrapper.is_positioned_at_tagged_document(reader) is True
        assert reader_state(reader) == before

    def test_tagged_field_value(self, wrapper):
        reader = reader_at_field(encode_document({"a": 1, "shape": CIRCLE}), "shape")
        assert wrapper.is_positioned_at_tagged_document(reader) is True

    def test_structural_only(self, wrapper):
        """An unresolvable discriminator still has the tagged shape."""
        reader = BinaryDocumentReader(encode_document({"_t": "Triangle", "_v": 1}))
        assert wrapper.is_positioned_at_tagged_document(reader) is True

    def test_scalar_value(self, wrapper):
        reader = reader_at_field(encode_document({"x": 3.14}), "x")
        before = reader_state(reader)
        assert wrapper.is_positioned_at_tagged_document(reader) is False
        assert reader_state(reader) == before
        assert reader.read_double() == 3.14

    def test_single_field(self, wrapper):
        reader = BinaryDocumentReader(encode_document({"_t": "Circle"}))
        before = reader_state(reader)
        assert wrapper.is_positioned_at_tagged_document(reader) is False
        assert reader_state(reader) == before

    @pytest.mark.parametrize(
        "document",
        [
            {},
            {"_v": 1},
            {"_v": {"radius": 1.5}, "_t": "Circle"},
            {"type": "Circle", "_v": {}},
            {"_t": "Circle", "value": {}},
            {"_t": "Circle", "_v": {}, "extra": 1},
            {"_t": "Circle", "_v": {}, "_v2": {}},
        ],
        ids=["empty", "payload-only", "swapped", "wrong-first", "wrong-second",
             "three-fields", "three-fields-similar"],
    )
    def test_negative_shapes(self, wrapper, document):
        reader = reader_at_field(encode_document({"value": document, "tail": True}), "value")
        before = reader_state(reader)
        assert wrapper.is_positioned_at_tagged_document(reader) is False
        assert reader_state(reader) == before
        # The caller can still take the untagged path.
        assert ValueCodec().decode(DecodingContext(reader)) == document
        assert reader.find_element("tail")

    def test_array_value(self, wrapper):
        reader = reader_at_field(encode_document({"a": ["_t", "_v"]}), "a")
        assert wrapper.is_positioned_at_tagged_document(reader) is False

    def test_uses_configured_field_name(self, discriminators, registry):
        convention = ScalarDiscriminatorConvention(DiscriminatorConfig("kind"), discriminators)
        codec = DiscriminatedWrapperCodec(convention, registry, Shape)
        assert not codec.is_positioned_at_tagged_document(
            BinaryDocumentReader(encode_document(CIRCLE))
        )
        assert codec.is_positioned_at_tagged_document(
            BinaryDocumentReader(encode_document({"kind": "Circle", "_v": {}}))
        )

    def test_repeated_probes_are_idempotent(self, wrapper):
        reader = BinaryDocumentReader(encode_document(CIRCLE))
        results = [wrapper.is_positioned_at_tagged_document(reader) for _ in range(3)]
        assert results == [True, True, True]
        assert wrapper.decode(DecodingContext(reader, Shape)) == Circle(radius=1.5)

    def test_truncated_input_propagates(self, wrapper):
        data = encode_document(CIRCLE)[:-4]
        reader = BinaryDocumentReader(data)
        before = reader_state(reader)
        with pytest.raises(DocumentTruncatedError):
            wrapper.is_positioned_at_tagged_document(reader)
        assert reader_state(reader) == before

    def test_corrupt_nested_length_propagates(self, wrapper):
        data = bytearray(encode_document({"w": {"_t": "Circle", "_v": {}}}))
        empty = data.rfind(b"\x05\x00\x00\x00\x00")
        data[empty] = 100
        reader = reader_at_field(bytes(data), "w")
        before = reader_state(reader)
        with pytest.raises(CorruptDocumentError):
            wrapper.is_positioned_at_tagged_document(reader)
        assert reader_state(reader) == before

    def test_short_outer_length_propagates(self, wrapper):
        data = bytearray(encode_document(CIRCLE))
        struct.pack_into("<i", data, 0, len(data) - 10)
        reader = BinaryDocumentReader(bytes(data))
        before = reader_state(reader)
        with pytest.raises(CorruptDocumentError, match="past the end"):
            wrapper.is_positioned_at_tagged_document(reader)
        assert reader_state(reader) == before
