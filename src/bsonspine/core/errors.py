"""
Structured error types for bson-spine.

Provides a typed error hierarchy with metadata for diagnostics, error
categorization and root cause analysis through error chaining.

Decoding a self-describing binary document can go wrong in several distinct
ways, and callers need to tell them apart: a document with the wrong shape is
a caller-visible format problem, a truncated stream is corruption, an
unrecognized discriminator is a type-resolution problem, and a type without a
codec is a registry problem. Instead of generic exceptions that lose context,
BsonSpineError and its subclasses carry:
- **Category:** What kind of error (format, resolution, registry, etc.)
- **Context:** Field name, expected/actual tokens, stream position, types
- **Cause:** Chained underlying exception for root cause analysis

Manifesto:
    - **Typed Error Hierarchy:** Different error types for different failures
    - **Rich Context:** Errors carry the expected and actual tokens
    - **Error Chaining:** Preserve original exceptions while adding context
    - **Propagate, don't mask:** Nothing in the codec layer swallows errors

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────────┐
        │                       BsonSpineError                              │
        │  (category, context, cause)                                       │
        ├──────────────────────────────────────────────────────────────────┤
        │                                                                   │
        │  FormatError          TypeResolutionError     CodecLookupError    │
        │  (FORMAT)             (RESOLUTION)            (REGISTRY)          │
        │     │                      │                                      │
        │  StructuralFormatError  UnknownDiscriminator  CodecError          │
        │  CorruptDocumentError   AmbiguousDiscriminator (CODEC)            │
        │     │                                                             │
        │  DocumentTruncatedError                                           │
        │                                                                   │
        │  InvalidStateError    ConfigError                                 │
        │  (STATE)              (CONFIG)                                    │
        │                          │                                        │
        │                       InvalidConfigError                          │
        └──────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = StructuralFormatError("bad wrapper", expected="_t", actual="_v")
    >>> error.category
    <ErrorCategory.FORMAT: 'FORMAT'>
    >>> error.context.expected
    '_t'

    >>> try:
    ...     raise struct.error("unpack requires a buffer of 4 bytes")
    ... except struct.error as e:
    ...     raise DocumentTruncatedError("input ended early", cause=e)
    Traceback (most recent call last):
    ...
    DocumentTruncatedError: input ended early

Guardrails:
    ❌ DON'T: Raise ValueError from a codec
    ✅ DO: Use the BsonSpineError subclass for the failure

    ❌ DON'T: Turn corruption into a False from a probe
    ✅ DO: Only structural mismatches become False; corruption propagates

Tags:
    error-handling, exception-hierarchy, error-context, bson-spine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification.

    Attributes:
        FORMAT: Document shape or byte-level violations
        RESOLUTION: Discriminator could not be mapped to a type
        REGISTRY: No codec registered for a type
        CODEC: A leaf codec rejected a value or element type
        STATE: Reader/writer method called out of order
        CONFIG: Invalid configuration values
        INTERNAL: Bugs, unexpected state
    """

    FORMAT = "FORMAT"
    RESOLUTION = "RESOLUTION"
    REGISTRY = "REGISTRY"
    CODEC = "CODEC"
    STATE = "STATE"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    ErrorContext gives every error the same diagnostic fields instead of
    ad-hoc dictionaries. The `to_dict()` method serializes all non-None
    fields for structured logging.

    Examples:
        >>> ctx = ErrorContext(field_name="_t", expected="_t", actual="_v")
        >>> ctx.to_dict()
        {'field_name': '_t', 'expected': '_t', 'actual': '_v'}

    Attributes:
        field_name: Name of the field being read or written
        expected: Token the codec expected
        actual: Token the codec found
        position: Byte offset in the stream
        nominal_type: Declared type name at the serialization site
        actual_type: Runtime type name
        metadata: Additional key-value pairs
    """

    field_name: str | None = None
    expected: str | None = None
    actual: str | None = None
    position: int | None = None
    nominal_type: str | None = None
    actual_type: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["field_name", "expected", "actual", "position",
                    "nominal_type", "actual_type"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class BsonSpineError(Exception):
    """
    Base exception for all bson-spine errors.

    All BsonSpineError instances carry:
    - **category:** ErrorCategory enum for classification
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception for chaining

    Subclasses set `default_category` to give their domain a sensible
    default.

    Examples:
        >>> error = BsonSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> error = BsonSpineError("Decode failed").with_context(position=12)
        >>> error.context.position
        12

        >>> d = BsonSpineError("Test", category=ErrorCategory.FORMAT).to_dict()
        >>> d["category"]
        'FORMAT'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> BsonSpineError:
        """Add context fields to this error (fluent API)."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize error for logging/JSON."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "context": self.context.to_dict(),
        }
        if self.cause:
            result["cause"] = str(self.cause)
            result["cause_type"] = type(self.cause).__name__
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# FORMAT ERRORS
# =============================================================================


class FormatError(BsonSpineError):
    """Base for errors in the bytes or shape of a document."""

    default_category = ErrorCategory.FORMAT


class StructuralFormatError(FormatError):
    """
    The document does not have the expected shape.

    Raised for wrong field names, missing or extra fields, and for a
    non-document value where a document was expected. Carries the expected
    and actual tokens for diagnostics.
    """

    def __init__(
        self,
        message: str,
        *,
        expected: str | None = None,
        actual: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual
        if expected is not None:
            self.context.expected = expected
        if actual is not None:
            self.context.actual = actual


class CorruptDocumentError(FormatError):
    """The stream contains bytes that cannot be a valid document."""


class DocumentTruncatedError(CorruptDocumentError):
    """The stream ended before the document it announced."""


# =============================================================================
# RESOLUTION / REGISTRY / CODEC ERRORS
# =============================================================================


class TypeResolutionError(BsonSpineError):
    """Base for failures mapping a discriminator to a runtime type."""

    default_category = ErrorCategory.RESOLUTION


class UnknownDiscriminatorError(TypeResolutionError):
    """No registered type matches the discriminator under the nominal type."""

    def __init__(self, discriminator: Any, nominal_type: type):
        super().__init__(
            f"Unknown discriminator value {discriminator!r} "
            f"for nominal type '{nominal_type.__name__}'",
            context=ErrorContext(
                actual=repr(discriminator),
                nominal_type=nominal_type.__name__,
            ),
        )
        self.discriminator = discriminator


class AmbiguousDiscriminatorError(TypeResolutionError):
    """More than one registered type matches the discriminator."""

    def __init__(self, discriminator: Any, candidates: list[type]):
        names = ", ".join(c.__name__ for c in candidates)
        super().__init__(
            f"Ambiguous discriminator value {discriminator!r}: matches {names}",
            context=ErrorContext(actual=repr(discriminator), metadata={"candidates": names}),
        )
        self.discriminator = discriminator
        self.candidates = candidates


class CodecLookupError(BsonSpineError):
    """No codec is registered for a type."""

    default_category = ErrorCategory.REGISTRY

    def __init__(self, value_type: Any, message: str | None = None):
        name = getattr(value_type, "__name__", repr(value_type))
        super().__init__(
            message or f"No codec registered for type '{name}'",
            context=ErrorContext(actual_type=name),
        )
        self.value_type = value_type


class CodecError(BsonSpineError):
    """A leaf codec cannot encode or decode a value."""

    default_category = ErrorCategory.CODEC


# =============================================================================
# STATE / CONFIG ERRORS
# =============================================================================


class InvalidStateError(BsonSpineError):
    """A reader or writer method was called in the wrong state."""

    default_category = ErrorCategory.STATE


class ConfigError(BsonSpineError):
    """Configuration error."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        super().__init__(
            message or f"Invalid value for config '{key}': {value!r}",
            context=ErrorContext(field_name=key, actual=repr(value)),
        )
        self.key = key
        self.value = value


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, BsonSpineError):
        return error.category
    return ErrorCategory.INTERNAL


def is_stream_corruption(error: Exception) -> bool:
    """Check whether an error means the underlying bytes are unusable."""
    return isinstance(error, CorruptDocumentError)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "BsonSpineError",
    "FormatError",
    "StructuralFormatError",
    "CorruptDocumentError",
    "DocumentTruncatedError",
    "TypeResolutionError",
    "UnknownDiscriminatorError",
    "AmbiguousDiscriminatorError",
    "CodecLookupError",
    "CodecError",
    "InvalidStateError",
    "ConfigError",
    "InvalidConfigError",
    "categorize_error",
    "is_stream_corruption",
]
