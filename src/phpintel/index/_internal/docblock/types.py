"""Docblock type expressions.

Parses type expressions as written in ``@param``, ``@return``, ``@var``
and native type hints into a small tree:

    ClassType("Foo")                       Foo
    ArrayType(ClassType("Foo"))            Foo[]
    CompoundType((A, B))                   A|B
    NullableType(ClassType("Foo"))         ?Foo
    SpecialType("static")                  self, static, parent, $this, mixed, void, never
    KeywordType("int")                     int, string, array, ...

Generic collection syntax (``array<K, V>``, ``list<V>``, ``iterable<V>``)
becomes ``ArrayType(V)``. Parsing never fails: docblocks are free text, so
anything that cannot be read degrades to ``mixed``. Names are left exactly
as written; qualifying them is the name resolver's job.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from phpintel.config.constants import KEYWORD_TYPES, TYPE_KEYWORD_ALIASES

SPECIAL_TYPE_NAMES = frozenset({"self", "static", "parent", "$this", "mixed", "void", "never"})

# Pseudo types that narrow a keyword type without changing what it is.
_PSEUDO_KEYWORDS = {
    "list": "array",
    "non-empty-list": "array",
    "non-empty-array": "array",
    "associative-array": "array",
    "positive-int": "int",
    "negative-int": "int",
    "non-positive-int": "int",
    "non-negative-int": "int",
    "non-zero-int": "int",
    "class-string": "string",
    "callable-string": "string",
    "numeric-string": "string",
    "non-empty-string": "string",
    "literal-string": "string",
    "lowercase-string": "string",
    "trait-string": "string",
    "interface-string": "string",
    "scalar": "scalar",
    "numeric": "numeric",
    "closed-resource": "resource",
    "open-resource": "resource",
}

_COLLECTION_NAMES = frozenset(
    {"array", "list", "non-empty-array", "non-empty-list", "iterable", "associative-array"}
)

_NAME_EXTRA_CHARS = frozenset("_\\$-.")


class DocblockType:
    """Base of the docblock type tree."""

    def __str__(self) -> str:  # pragma: no cover - overridden
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class ClassType(DocblockType):
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class KeywordType(DocblockType):
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class SpecialType(DocblockType):
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class ArrayType(DocblockType):
    element: DocblockType

    def __str__(self) -> str:
        if isinstance(self.element, (CompoundType, NullableType)):
            return f"({self.element})[]"
        return f"{self.element}[]"


@dataclass(frozen=True, slots=True)
class NullableType(DocblockType):
    inner: DocblockType

    def __str__(self) -> str:
        if isinstance(self.inner, CompoundType):
            return f"?({self.inner})"
        return f"?{self.inner}"


@dataclass(frozen=True, slots=True)
class CompoundType(DocblockType):
    types: tuple[DocblockType, ...]

    def __str__(self) -> str:
        return "|".join(str(t) for t in self.types)


MIXED = SpecialType("mixed")


class _Unparseable(Exception):
    pass


class _TypeReader:
    """Recursive-descent reader over a single type expression."""

    def __init__(self, type_text: str) -> None:
        self._text = type_text
        self._pos = 0

    def read(self) -> DocblockType:
        result = self._union()
        self._skip_ws()
        if self._pos < len(self._text):
            raise _Unparseable(self._text[self._pos :])
        return result

    def _peek(self, text: str) -> bool:
        self._skip_ws()
        return self._text.startswith(text, self._pos)

    def _consume(self, text: str) -> bool:
        if self._peek(text):
            self._pos += len(text)
            return True
        return False

    def _skip_ws(self) -> None:
        while self._pos < len(self._text) and self._text[self._pos].isspace():
            self._pos += 1

    def _union(self) -> DocblockType:
        parts = [self._postfix()]
        while self._consume("|") or self._consume("&"):
            parts.append(self._postfix())
        flat: list[DocblockType] = []
        for part in parts:
            if isinstance(part, CompoundType):
                flat.extend(part.types)
            else:
                flat.append(part)
        return flat[0] if len(flat) == 1 else CompoundType(tuple(flat))

    def _postfix(self) -> DocblockType:
        if self._consume("?"):
            return NullableType(self._postfix())
        result = self._atom()
        while self._consume("[]"):
            result = ArrayType(result)
        return result

    def _atom(self) -> DocblockType:
        if self._consume("("):
            inner = self._union()
            if not self._consume(")"):
                raise _Unparseable("unbalanced parenthesis")
            return inner

        name = self._name()
        if not name:
            raise _Unparseable(self._text[self._pos :])

        args: list[DocblockType] = []
        if self._consume("<"):
            args.append(self._union())
            while self._consume(","):
                args.append(self._union())
            if not self._consume(">"):
                raise _Unparseable("unbalanced generic")
        elif self._peek("{"):
            self._skip_balanced("{", "}")
        elif name.lower() in ("callable", "closure", "\\closure") and self._peek("("):
            self._skip_balanced("(", ")")
            if self._consume(":"):
                self._postfix()

        return _classify(name, args)

    def _name(self) -> str:
        self._skip_ws()
        start = self._pos
        while self._pos < len(self._text):
            ch = self._text[self._pos]
            if ch.isalnum() or ch in _NAME_EXTRA_CHARS or ord(ch) > 0x7F:
                self._pos += 1
            else:
                break
        return self._text[start : self._pos]

    def _skip_balanced(self, open_ch: str, close_ch: str) -> None:
        depth = 0
        while self._pos < len(self._text):
            ch = self._text[self._pos]
            self._pos += 1
            if ch == open_ch:
                depth += 1
            elif ch == close_ch:
                depth -= 1
                if depth == 0:
                    return
        raise _Unparseable(f"unbalanced {open_ch}")


def _classify(name: str, args: list[DocblockType]) -> DocblockType:
    lower = name.lower()
    if args and lower in _COLLECTION_NAMES:
        return ArrayType(args[-1])
    if lower in SPECIAL_TYPE_NAMES:
        return SpecialType(lower)
    if lower == "array-key":
        return CompoundType((KeywordType("int"), KeywordType("string")))
    if lower in _PSEUDO_KEYWORDS:
        return KeywordType(_PSEUDO_KEYWORDS[lower])
    if lower in KEYWORD_TYPES:
        return KeywordType(TYPE_KEYWORD_ALIASES.get(lower, lower))
    if name[0].isdigit() or name.startswith(("'", '"', "-")):
        raise _Unparseable(name)
    return ClassType(name)


def parse(type_text: str) -> DocblockType:
    """Parse a type expression. Never raises."""
    type_text = type_text.strip()
    if not type_text:
        return MIXED
    try:
        return _TypeReader(type_text).read()
    except _Unparseable:
        return MIXED


def flatten(type_: DocblockType) -> list[DocblockType]:
    """Union members of a type, with ``?T`` expanded to ``T`` plus ``null``."""
    if isinstance(type_, CompoundType):
        result: list[DocblockType] = []
        for member in type_.types:
            result.extend(flatten(member))
        return result
    if isinstance(type_, NullableType):
        return [*flatten(type_.inner), KeywordType("null")]
    return [type_]


def map_names(
    type_: DocblockType, fn: Callable[[DocblockType], DocblockType]
) -> DocblockType:
    """Rebuild a type, passing every class and special leaf through ``fn``."""
    if isinstance(type_, ArrayType):
        return ArrayType(map_names(type_.element, fn))
    if isinstance(type_, NullableType):
        return NullableType(map_names(type_.inner, fn))
    if isinstance(type_, CompoundType):
        return CompoundType(tuple(map_names(t, fn) for t in type_.types))
    if isinstance(type_, (ClassType, SpecialType)):
        return fn(type_)
    return type_


def element_type(type_string: str) -> str | None:
    """``Foo[]`` -> ``Foo``; ``None`` when the type is not an array of something."""
    if type_string.endswith("[]"):
        inner = type_string[:-2]
        if inner.startswith("(") and inner.endswith(")"):
            inner = inner[1:-1]
        return inner
    return None


def is_class_type(type_string: str) -> bool:
    """Whether a resolved type string names a classlike."""
    if not type_string or type_string.endswith("[]"):
        return False
    lower = type_string.lower()
    return lower not in KEYWORD_TYPES and lower not in SPECIAL_TYPE_NAMES and (
        lower not in _PSEUDO_KEYWORDS
    )
