"""bson-spine -- polymorphic binary-document codecs.

Values whose declared type is a base class are written as tagged documents
(``{"_t": <discriminator>, "_v": <payload>}``) and read back as the concrete
type, with a side-effect-free lookahead that tells tagged documents apart
from plain ones.

Architecture::

    core/            errors, logging, settings, protocols
    io/              BinaryDocumentReader (bookmarks) / BinaryDocumentWriter
    serialization/   contexts, CodecRegistry, conventions, codecs, serializer
    cli/             typer application (inspect, probe, config)
"""

__version__ = "0.1.0"

from bsonspine.core.errors import (
    BsonSpineError,
    CodecLookupError,
    DocumentTruncatedError,
    StructuralFormatError,
    TypeResolutionError,
)
from bsonspine.core.settings import DiscriminatorConfig
from bsonspine.io import BinaryDocumentReader, BinaryDocumentWriter, BsonType
from bsonspine.serialization import (
    CodecRegistry,
    DecodingContext,
    DiscriminatedWrapperCodec,
    DiscriminatorRegistry,
    DocumentSerializer,
    EncodingContext,
    ScalarDiscriminatorConvention,
)

__all__ = [
    "__version__",
    "BsonSpineError",
    "CodecLookupError",
    "DocumentTruncatedError",
    "StructuralFormatError",
    "TypeResolutionError",
    "DiscriminatorConfig",
    "BinaryDocumentReader",
    "BinaryDocumentWriter",
    "BsonType",
    "CodecRegistry",
    "DecodingContext",
    "DiscriminatedWrapperCodec",
    "DiscriminatorRegistry",
    "DocumentSerializer",
    "EncodingContext",
    "ScalarDiscriminatorConvention",
]
