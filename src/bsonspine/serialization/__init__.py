"""Serialization layer: contexts, registries, conventions and codecs."""

from bsonspine.serialization.context import DecodingContext, EncodingContext
from bsonspine.serialization.registry import CodecRegistry
from bsonspine.serialization.codecs import (  # noqa: I001
    Coordinates3D,
    DataclassCodec,
    DiscriminatedWrapperCodec,
    ListCodec,
    PolymorphicCodec,
    ValueCodec,
)
from bsonspine.serialization.conventions import (
    DiscriminatorRegistry,
    HierarchicalDiscriminatorConvention,
    ScalarDiscriminatorConvention,
    create_convention,
)
from bsonspine.serialization.serializer import DocumentSerializer, build_codec_registry

__all__ = [
    "CodecRegistry",
    "Coordinates3D",
    "DataclassCodec",
    "DecodingContext",
    "DiscriminatedWrapperCodec",
    "DiscriminatorRegistry",
    "DocumentSerializer",
    "EncodingContext",
    "HierarchicalDiscriminatorConvention",
    "ListCodec",
    "PolymorphicCodec",
    "ScalarDiscriminatorConvention",
    "ValueCodec",
    "build_codec_registry",
    "create_convention",
]
