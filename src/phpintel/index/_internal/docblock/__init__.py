"""Docblock parsing: comment tags and type expressions."""

from phpintel.index._internal.docblock.parser import (
    Docblock,
    DocblockParser,
    MethodTag,
    MethodTagParameter,
    ParamTag,
    PropertyTag,
    ReturnTag,
    ThrowsTag,
    VarTag,
)
from phpintel.index._internal.docblock.types import (
    ArrayType,
    ClassType,
    CompoundType,
    DocblockType,
    KeywordType,
    NullableType,
    SpecialType,
    parse,
)

__all__ = [
    # Comments
    "Docblock",
    "DocblockParser",
    "MethodTag",
    "MethodTagParameter",
    "ParamTag",
    "PropertyTag",
    "ReturnTag",
    "ThrowsTag",
    "VarTag",
    # Types
    "ArrayType",
    "ClassType",
    "CompoundType",
    "DocblockType",
    "KeywordType",
    "NullableType",
    "SpecialType",
    "parse",
]
