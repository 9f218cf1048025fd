"""Flattened classlike views produced by ``ClasslikeResolver``."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from phpintel.index.models import TypeInfo


def _types_to_dict(types: list[TypeInfo]) -> list[dict[str, str]]:
    return [t.to_dict() for t in types]


@dataclass
class ResolvedParameter:
    name: str
    types: list[TypeInfo] = field(default_factory=list)
    default_value: str | None = None
    description: str | None = None
    is_nullable: bool = False
    is_reference: bool = False
    is_variadic: bool = False
    is_promoted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "types": _types_to_dict(self.types),
            "default_value": self.default_value,
            "description": self.description,
            "is_nullable": self.is_nullable,
            "is_reference": self.is_reference,
            "is_variadic": self.is_variadic,
            "is_promoted": self.is_promoted,
        }


@dataclass
class ResolvedMember:
    """Member as seen from the classlike it was resolved for.

    Attributes:
        declaring_fqcn: Classlike (or trait) whose body declares the member.
        is_inherited: True when the member comes unmodified from a parent
            or interface.
        overrides: Declaring FQCN of the parent member this one replaces.
        implements: Interfaces that declare a member with this name.
    """

    name: str
    declaring_fqcn: str
    visibility: str = "public"
    is_static: bool = False
    types: list[TypeInfo] = field(default_factory=list)
    start_line: int = 0
    end_line: int = 0
    is_inherited: bool = False
    overrides: str | None = None
    implements: list[str] = field(default_factory=list)
    is_deprecated: bool = False
    has_docblock: bool = False
    short_description: str | None = None
    long_description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "declaring_fqcn": self.declaring_fqcn,
            "visibility": self.visibility,
            "is_static": self.is_static,
            "types": _types_to_dict(self.types),
            "start_line": self.start_line,
            "end_line": self.end_line,
            "is_inherited": self.is_inherited,
            "overrides": self.overrides,
            "implements": list(self.implements),
            "is_deprecated": self.is_deprecated,
            "has_docblock": self.has_docblock,
            "short_description": self.short_description,
            "long_description": self.long_description,
        }


@dataclass
class ResolvedConstant(ResolvedMember):
    default_value: str | None = None
    type_description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["default_value"] = self.default_value
        data["type_description"] = self.type_description
        return data


@dataclass
class ResolvedProperty(ResolvedMember):
    default_value: str | None = None
    is_magic: bool = False
    is_readonly: bool = False
    type_description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            default_value=self.default_value,
            is_magic=self.is_magic,
            is_readonly=self.is_readonly,
            type_description=self.type_description,
        )
        return data


@dataclass
class ResolvedMethod(ResolvedMember):
    """Method; ``types`` holds the return types."""

    parameters: list[ResolvedParameter] = field(default_factory=list)
    return_description: str | None = None
    is_abstract: bool = False
    is_final: bool = False
    is_magic: bool = False
    returns_reference: bool = False
    throws: list[dict[str, str | None]] = field(default_factory=list)

    @property
    def return_types(self) -> list[TypeInfo]:
        return self.types

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            parameters=[p.to_dict() for p in self.parameters],
            return_description=self.return_description,
            is_abstract=self.is_abstract,
            is_final=self.is_final,
            is_magic=self.is_magic,
            returns_reference=self.returns_reference,
            throws=list(self.throws),
        )
        return data


@dataclass
class FlattenedClasslike:
    """A classlike with every inherited, implemented and used member merged in.

    ``parents``, ``interfaces`` and ``traits`` are linearised: direct edges
    first, then the edges of each ancestor in the order they were visited.
    Methods are keyed by lower-cased name, constants and properties by their
    exact name.
    """

    fqcn: str
    name: str
    kind: str
    file_path: str | None = None
    start_line: int = 0
    end_line: int = 0
    is_abstract: bool = False
    is_final: bool = False
    is_deprecated: bool = False
    has_docblock: bool = False
    short_description: str | None = None
    long_description: str | None = None
    direct_parents: list[str] = field(default_factory=list)
    direct_interfaces: list[str] = field(default_factory=list)
    direct_traits: list[str] = field(default_factory=list)
    parents: list[str] = field(default_factory=list)
    interfaces: list[str] = field(default_factory=list)
    traits: list[str] = field(default_factory=list)
    constants: dict[str, ResolvedConstant] = field(default_factory=dict)
    properties: dict[str, ResolvedProperty] = field(default_factory=dict)
    methods: dict[str, ResolvedMethod] = field(default_factory=dict)
    constant_conflicts: list[dict[str, str]] = field(default_factory=list)

    def get_method(self, name: str) -> ResolvedMethod | None:
        return self.methods.get(name.lower())

    def get_property(self, name: str) -> ResolvedProperty | None:
        return self.properties.get(name.lstrip("$"))

    def get_constant(self, name: str) -> ResolvedConstant | None:
        return self.constants.get(name)

    def is_subtype_of(self, fqcn: str) -> bool:
        target = fqcn.lower()
        return target == self.fqcn.lower() or any(
            c.lower() == target for c in (*self.parents, *self.interfaces)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "fqcn": self.fqcn,
            "name": self.name,
            "kind": self.kind,
            "file_path": self.file_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "is_abstract": self.is_abstract,
            "is_final": self.is_final,
            "is_deprecated": self.is_deprecated,
            "has_docblock": self.has_docblock,
            "short_description": self.short_description,
            "long_description": self.long_description,
            "direct_parents": list(self.direct_parents),
            "direct_interfaces": list(self.direct_interfaces),
            "direct_traits": list(self.direct_traits),
            "parents": list(self.parents),
            "interfaces": list(self.interfaces),
            "traits": list(self.traits),
            "constants": {k: v.to_dict() for k, v in self.constants.items()},
            "properties": {k: v.to_dict() for k, v in self.properties.items()},
            "methods": {k: v.to_dict() for k, v in self.methods.items()},
            "constant_conflicts": list(self.constant_conflicts),
        }
