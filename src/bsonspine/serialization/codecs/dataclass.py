"""
Dataclass codec: a dataclass instance as a document of its fields.

Field codecs are derived from the class's type hints:

- ``T`` → ``PolymorphicCodec(T)``, so a subclass instance is wrapped
- ``T | None`` / ``Optional[T]`` → the same, but ``None`` is written as null
- ``list[T]`` → ``ListCodec`` of ``PolymorphicCodec(T)``
- ``Any`` or a bare ``list`` → ``object`` / untyped items

Field codecs are built on first use, so self-referential dataclasses work.

Examples:
    >>> @dataclass
    ... class Drawing:
    ...     title: str
    ...     shapes: list[Shape]
    >>> codec = DataclassCodec(Drawing, registry, convention)

Tags:
    dataclass, class-map, codec, bson-spine
"""

from __future__ import annotations

import dataclasses
import threading
import types
import typing
from typing import Any, Union

from bsonspine.core.errors import StructuralFormatError
from bsonspine.core.protocols import Codec, DiscriminatorConvention
from bsonspine.io.bson_type import BsonType
from bsonspine.serialization.codecs.polymorphic import PolymorphicCodec
from bsonspine.serialization.codecs.sequence import ListCodec
from bsonspine.serialization.context import DecodingContext, EncodingContext
from bsonspine.serialization.registry import CodecRegistry

_NONE_TYPE = type(None)


class DataclassCodec:
    def __init__(self, cls: type, registry: CodecRegistry, convention: DiscriminatorConvention):
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"'{cls.__name__}' is not a dataclass")
        self._cls = cls
        self._registry = registry
        self._convention = convention
        self._fields: dict[str, Codec] | None = None
        self._lock = threading.Lock()

    @property
    def value_type(self) -> type:
        return self._cls

    @property
    def field_codecs(self) -> dict[str, Codec]:
        if self._fields is None:
            with self._lock:
                if self._fields is None:
                    hints = typing.get_type_hints(self._cls)
                    self._fields = {
                        f.name: self._codec_for_hint(hints.get(f.name, Any))
                        for f in dataclasses.fields(self._cls)
                    }
        return self._fields

    def encode(self, context: EncodingContext, value: Any) -> None:
        writer = context.writer
        writer.write_start_document()
        for name, codec in self.field_codecs.items():
            writer.write_name(name)
            context.encode_with_child_context(codec, getattr(value, name))
        writer.write_end_document()

    def decode(self, context: DecodingContext) -> Any:
        reader = context.reader
        codecs = self.field_codecs
        values: dict[str, Any] = {}

        reader.read_start_document()
        while reader.read_bson_type() != BsonType.END_OF_DOCUMENT:
            name = reader.read_name()
            codec = codecs.get(name)
            if codec is None:
                raise StructuralFormatError(
                    f"Field '{name}' does not match any field of class '{self._cls.__name__}'.",
                    expected=", ".join(codecs),
                    actual=name,
                )
            values[name] = context.decode_with_child_context(codec)
        reader.read_end_document()

        missing = [
            f.name for f in dataclasses.fields(self._cls)
            if f.name not in values
            and f.default is dataclasses.MISSING
            and f.default_factory is dataclasses.MISSING
        ]
        if missing:
            raise StructuralFormatError(
                f"Document for class '{self._cls.__name__}' is missing required "
                f"field(s): {', '.join(missing)}.",
                expected=", ".join(missing),
                actual="end of document",
            )

        init_values = {k: v for k, v in values.items() if self._is_init_field(k)}
        instance = self._cls(**init_values)
        for name, value in values.items():
            if name not in init_values:
                object.__setattr__(instance, name, value)
        return instance

    def _is_init_field(self, name: str) -> bool:
        return self._cls.__dataclass_fields__[name].init

    def _codec_for_hint(self, hint: Any, nullable: bool = False) -> Codec:
        origin = typing.get_origin(hint)
        args = typing.get_args(hint)

        if origin in (Union, types.UnionType):
            rest = [a for a in args if a is not _NONE_TYPE]
            inner = rest[0] if len(rest) == 1 else object
            return self._codec_for_hint(inner, nullable or _NONE_TYPE in args)

        if hint is list or origin is list:
            item_hint = args[0] if args else object
            return ListCodec(self._codec_for_hint(item_hint), nullable=nullable)

        if isinstance(origin, type):
            hint = origin
        if hint is Any or not isinstance(hint, type):
            hint = object
        return PolymorphicCodec(hint, self._registry, self._convention, nullable=nullable)


def dataclass_provider(convention: DiscriminatorConvention):
    """Codec provider that builds a DataclassCodec for any dataclass type."""

    def provide(value_type: type, registry: CodecRegistry) -> Codec | None:
        if isinstance(value_type, type) and dataclasses.is_dataclass(value_type):
            return DataclassCodec(value_type, registry, convention)
        return None

    return provide
