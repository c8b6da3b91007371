"""bson-spine core -- errors, logging, settings and protocols.

Architecture::

    errors.py       Structured error hierarchy (BsonSpineError, FormatError)
    logging.py      structlog configuration and get_logger
    settings.py     BsonSpineSettings + DiscriminatorConfig
    protocols.py    Codec, DiscriminatorConvention, CodecProvider
"""

from bsonspine.core.errors import (
    BsonSpineError,
    CodecError,
    CodecLookupError,
    CorruptDocumentError,
    DocumentTruncatedError,
    ErrorCategory,
    ErrorContext,
    FormatError,
    InvalidStateError,
    StructuralFormatError,
    TypeResolutionError,
)
from bsonspine.core.settings import (
    PAYLOAD_FIELD_NAME,
    BsonSpineSettings,
    DiscriminatorConfig,
    get_settings,
)

__all__ = [
    "BsonSpineError",
    "CodecError",
    "CodecLookupError",
    "CorruptDocumentError",
    "DocumentTruncatedError",
    "ErrorCategory",
    "ErrorContext",
    "FormatError",
    "InvalidStateError",
    "StructuralFormatError",
    "TypeResolutionError",
    "PAYLOAD_FIELD_NAME",
    "BsonSpineSettings",
    "DiscriminatorConfig",
    "get_settings",
]
