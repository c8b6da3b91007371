"""Codec registry for looking up value codecs by runtime type.

Manifesto:
    The wrapper codec only knows a type at decode time, after the
    discriminator has been resolved. A registry lets it find the codec for
    that type without import-time coupling to every codec module.

    Registries are plain instances, passed to the codecs that need them.
    There is no process-wide registry.

Tags:
    bson-spine, serialization, registry, codec-lookup

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from bsonspine.core.errors import CodecLookupError
from bsonspine.core.logging import get_logger
from bsonspine.core.protocols import Codec, CodecProvider

logger = get_logger(__name__)


class CodecRegistry:
    """Maps runtime types to codecs.

    Explicit registrations win. Otherwise each provider is asked in order,
    and the first codec returned is cached for the type.
    """

    def __init__(self, providers: Iterable[CodecProvider] = ()):
        self._codecs: dict[type, Codec] = {}
        self._providers: list[CodecProvider] = list(providers)
        self._lock = threading.Lock()

    def register(self, value_type: type, codec: Codec, *, replace: bool = False) -> Codec:
        with self._lock:
            if value_type in self._codecs and not replace:
                raise ValueError(f"Codec for '{value_type.__name__}' is already registered")
            self._codecs[value_type] = codec
        logger.debug(
            "codec_registered",
            value_type=value_type.__name__,
            codec=type(codec).__name__,
        )
        return codec

    def add_provider(self, provider: CodecProvider) -> None:
        self._providers.append(provider)

    def lookup(self, value_type: type) -> Codec:
        """Get the codec for ``value_type``; raises CodecLookupError."""
        with self._lock:
            codec = self._codecs.get(value_type)
        if codec is not None:
            return codec

        # Providers run outside the lock: a provider may look up other types.
        for provider in self._providers:
            codec = provider(value_type, self)
            if codec is not None:
                with self._lock:
                    codec = self._codecs.setdefault(value_type, codec)
                logger.debug(
                    "codec_created",
                    value_type=value_type.__name__,
                    codec=type(codec).__name__,
                )
                return codec

        raise CodecLookupError(value_type)

    def is_registered(self, value_type: type) -> bool:
        with self._lock:
            return value_type in self._codecs

    def registered_types(self) -> list[type]:
        with self._lock:
            return sorted(self._codecs, key=lambda t: t.__name__)

    def __contains__(self, value_type: object) -> bool:
        return isinstance(value_type, type) and self.is_registered(value_type)
