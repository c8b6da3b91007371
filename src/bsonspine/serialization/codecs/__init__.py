"""Value codecs.

Architecture::

    value.py         ValueCodec: untyped None/bool/int/float/str/list/dict
    primitives.py    StringCodec, IntCodec, DoubleCodec, BooleanCodec
    coordinates.py   Coordinates3D + Coordinates3DCodec (fixed-arity array)
    sequence.py      ListCodec
    wrapper.py       DiscriminatedWrapperCodec (tagged two-field documents)
    polymorphic.py   PolymorphicCodec (plain vs tagged, chosen by lookahead)
    dataclass.py     DataclassCodec + dataclass_provider
"""

from bsonspine.serialization.codecs.coordinates import Coordinates3D, Coordinates3DCodec
from bsonspine.serialization.codecs.dataclass import DataclassCodec, dataclass_provider
from bsonspine.serialization.codecs.polymorphic import PolymorphicCodec
from bsonspine.serialization.codecs.primitives import (
    BooleanCodec,
    DoubleCodec,
    IntCodec,
    StringCodec,
)
from bsonspine.serialization.codecs.sequence import ListCodec
from bsonspine.serialization.codecs.value import ValueCodec
from bsonspine.serialization.codecs.wrapper import DiscriminatedWrapperCodec

__all__ = [
    "BooleanCodec",
    "Coordinates3D",
    "Coordinates3DCodec",
    "DataclassCodec",
    "DiscriminatedWrapperCodec",
    "DoubleCodec",
    "IntCodec",
    "ListCodec",
    "PolymorphicCodec",
    "StringCodec",
    "ValueCodec",
    "dataclass_provider",
]
