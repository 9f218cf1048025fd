"""SQLModel definitions for the PHP symbol index.

Single source of truth for all table schemas.

Architecture:
- files own namespace scopes, which own import aliases
- files own global constants, global functions and classlikes
- classlikes own their constants, properties and methods
- functions and methods own their ordered parameters

Every child row cascades on delete, so removing a file row removes every
declaration extracted from it. Type lists are stored as JSON arrays of
``{"type": <as written>, "fqcn": <resolved>}`` objects (see ``TypeInfo``).
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import Column, ForeignKey, Integer
from sqlmodel import Field, SQLModel

# ============================================================================
# ENUMS
# ============================================================================


class ClasslikeKind(str, Enum):
    CLASS = "class"
    INTERFACE = "interface"
    TRAIT = "trait"


class ImportKind(str, Enum):
    """What an import alias refers to (``use``, ``use function``, ``use const``)."""

    CLASSLIKE = "classlike"
    FUNCTION = "function"
    CONSTANT = "constant"


class Visibility(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"


# ============================================================================
# VALUE OBJECTS
# ============================================================================


@dataclass(frozen=True, slots=True)
class TypeInfo:
    """A type as written in source paired with its fully qualified form."""

    type: str
    fqcn: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "fqcn": self.fqcn}

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> "TypeInfo":
        return cls(type=data["type"], fqcn=data["fqcn"])


def dump_types(types: list[TypeInfo]) -> str:
    return json.dumps([t.to_dict() for t in types])


def load_types(raw: str | None) -> list[TypeInfo]:
    if not raw:
        return []
    return [TypeInfo.from_dict(item) for item in json.loads(raw)]


def load_json(raw: str | None, default: Any) -> Any:
    if not raw:
        return default
    return json.loads(raw)


# ============================================================================
# TABLES
# ============================================================================


class File(SQLModel, table=True):
    """Indexed source file."""

    __tablename__ = "files"

    id: int | None = Field(default=None, primary_key=True)
    path: str = Field(unique=True, index=True)
    indexed_at: float
    diagnostic_count: int = 0


class FileNamespace(SQLModel, table=True):
    """Line range governed by one ``namespace`` declaration.

    ``name`` is the empty string for code outside any namespace.
    """

    __tablename__ = "file_namespaces"

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    name: str = ""
    start_line: int
    end_line: int


class FileImport(SQLModel, table=True):
    """``use`` alias visible within one namespace scope."""

    __tablename__ = "file_imports"

    id: int | None = Field(default=None, primary_key=True)
    namespace_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("file_namespaces.id", ondelete="CASCADE"), index=True
        )
    )
    line: int
    alias: str = Field(index=True)
    name: str  # Fully qualified target, with leading backslash
    kind: str = Field(default=ImportKind.CLASSLIKE.value, index=True)


class Classlike(SQLModel, table=True):
    """Class, interface or trait declaration."""

    __tablename__ = "classlikes"

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    fqcn: str = Field(index=True)
    name: str
    kind: str = Field(index=True)
    start_line: int
    end_line: int
    is_abstract: bool = False
    is_final: bool = False
    is_deprecated: bool = False
    has_docblock: bool = False
    short_description: str | None = None
    long_description: str | None = None
    parents_json: str = "[]"
    interfaces_json: str = "[]"
    traits_json: str = "[]"
    trait_aliases_json: str = "[]"
    trait_precedences_json: str = "[]"

    @property
    def parents(self) -> list[str]:
        return load_json(self.parents_json, [])

    @property
    def interfaces(self) -> list[str]:
        return load_json(self.interfaces_json, [])

    @property
    def traits(self) -> list[str]:
        return load_json(self.traits_json, [])

    @property
    def trait_aliases(self) -> list[dict[str, Any]]:
        return load_json(self.trait_aliases_json, [])

    @property
    def trait_precedences(self) -> list[dict[str, Any]]:
        return load_json(self.trait_precedences_json, [])


class ConstantDef(SQLModel, table=True):
    """Global constant (``const``/``define``) or class constant.

    Global constants carry an ``fqsen``; class constants carry ``classlike_id``.
    """

    __tablename__ = "constants"

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    classlike_id: int | None = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("classlikes.id", ondelete="CASCADE"), index=True, nullable=True
        ),
    )
    fqsen: str | None = Field(default=None, index=True)
    name: str = Field(index=True)
    start_line: int
    end_line: int
    default_value: str | None = None
    visibility: str = Visibility.PUBLIC.value
    types_json: str = "[]"
    is_deprecated: bool = False
    has_docblock: bool = False
    short_description: str | None = None
    long_description: str | None = None
    type_description: str | None = None

    @property
    def types(self) -> list[TypeInfo]:
        return load_types(self.types_json)


class PropertyDef(SQLModel, table=True):
    """Class property, including docblock-declared magic properties."""

    __tablename__ = "properties"

    id: int | None = Field(default=None, primary_key=True)
    classlike_id: int = Field(
        sa_column=Column(Integer, ForeignKey("classlikes.id", ondelete="CASCADE"), index=True)
    )
    name: str = Field(index=True)  # Without the leading '$'
    start_line: int
    end_line: int
    default_value: str | None = None
    visibility: str = Visibility.PUBLIC.value
    is_static: bool = False
    is_magic: bool = False
    is_readonly: bool = False
    types_json: str = "[]"
    is_deprecated: bool = False
    has_docblock: bool = False
    short_description: str | None = None
    long_description: str | None = None
    type_description: str | None = None

    @property
    def types(self) -> list[TypeInfo]:
        return load_types(self.types_json)


class FunctionDef(SQLModel, table=True):
    """Global function or method (``classlike_id`` set for methods)."""

    __tablename__ = "functions"

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    classlike_id: int | None = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("classlikes.id", ondelete="CASCADE"), index=True, nullable=True
        ),
    )
    fqsen: str | None = Field(default=None, index=True)
    name: str = Field(index=True)
    start_line: int
    end_line: int
    visibility: str = Visibility.PUBLIC.value
    is_static: bool = False
    is_abstract: bool = False
    is_final: bool = False
    is_magic: bool = False
    returns_reference: bool = False
    return_types_json: str = "[]"
    return_description: str | None = None
    throws_json: str = "[]"
    is_deprecated: bool = False
    has_docblock: bool = False
    short_description: str | None = None
    long_description: str | None = None

    @property
    def return_types(self) -> list[TypeInfo]:
        return load_types(self.return_types_json)

    @property
    def throws(self) -> list[dict[str, str | None]]:
        return load_json(self.throws_json, [])


class ParameterDef(SQLModel, table=True):
    """Ordered parameter of a function or method."""

    __tablename__ = "parameters"

    id: int | None = Field(default=None, primary_key=True)
    function_id: int = Field(
        sa_column=Column(Integer, ForeignKey("functions.id", ondelete="CASCADE"), index=True)
    )
    position: int
    name: str  # Without the leading '$'
    types_json: str = "[]"
    default_value: str | None = None
    description: str | None = None
    is_nullable: bool = False
    is_reference: bool = False
    is_variadic: bool = False
    is_promoted: bool = False

    @property
    def types(self) -> list[TypeInfo]:
        return load_types(self.types_json)
