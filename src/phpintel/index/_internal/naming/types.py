"""Resolution of type expressions into ``TypeInfo`` lists."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from phpintel.index._internal.docblock import types as doctypes
from phpintel.index._internal.naming.context import NamespaceContext
from phpintel.index._internal.naming.resolver import NameResolver
from phpintel.index._internal.parsing.nodes import node_text
from phpintel.index.models import ImportKind, TypeInfo


@dataclass(frozen=True, slots=True)
class ClassBinding:
    """Classlike that ``self`` and ``parent`` refer to at some point in code."""

    self_fqcn: str | None = None
    parent_fqcn: str | None = None


NO_BINDING = ClassBinding()


class TypeResolver:
    """Qualifies every class name inside a type expression.

    ``self`` and ``parent`` are bound through ``ClassBinding`` when one is
    given. ``static`` and ``$this`` are left as written; they depend on the
    classlike a member is accessed through.
    """

    def __init__(self, names: NameResolver) -> None:
        self._names = names

    def resolve_text(
        self,
        type_text: str | None,
        context: NamespaceContext,
        binding: ClassBinding = NO_BINDING,
    ) -> list[TypeInfo]:
        if not type_text or not type_text.strip():
            return []
        parsed = doctypes.parse(type_text)
        result: list[TypeInfo] = []
        seen: set[str] = set()
        for member in doctypes.flatten(parsed):
            qualified = doctypes.map_names(
                member, lambda leaf: self._qualify_leaf(leaf, context, binding)
            )
            info = TypeInfo(type=str(member), fqcn=str(qualified))
            if info.fqcn not in seen:
                seen.add(info.fqcn)
                result.append(info)
        return result

    def resolve_hint(
        self,
        node: Any,
        context: NamespaceContext,
        binding: ClassBinding = NO_BINDING,
    ) -> list[TypeInfo]:
        """Resolve a native type hint node (``named_type``, ``optional_type``, ...)."""
        if node is None:
            return []
        return self.resolve_text(node_text(node), context, binding)

    def resolve_class_name(
        self,
        name: str,
        context: NamespaceContext,
        binding: ClassBinding = NO_BINDING,
    ) -> str:
        leaf = doctypes.parse(name)
        if isinstance(leaf, (doctypes.ClassType, doctypes.SpecialType)):
            return str(self._qualify_leaf(leaf, context, binding))
        return self._names.resolve(name, context, ImportKind.CLASSLIKE)

    def _qualify_leaf(
        self,
        leaf: doctypes.DocblockType,
        context: NamespaceContext,
        binding: ClassBinding,
    ) -> doctypes.DocblockType:
        if isinstance(leaf, doctypes.SpecialType):
            if leaf.name == "self" and binding.self_fqcn:
                return doctypes.ClassType(binding.self_fqcn)
            if leaf.name == "parent" and binding.parent_fqcn:
                return doctypes.ClassType(binding.parent_fqcn)
            return leaf
        if isinstance(leaf, doctypes.ClassType):
            return doctypes.ClassType(
                self._names.resolve(leaf.name, context, ImportKind.CLASSLIKE)
            )
        return leaf


def type_strings(types: list[TypeInfo]) -> list[str]:
    return [t.fqcn for t in types]


def types_from_strings(strings: list[str]) -> list[TypeInfo]:
    """Wrap already resolved type strings (deduced types are fully qualified)."""
    return [TypeInfo(type=s, fqcn=s) for s in strings]


def with_null(types: list[TypeInfo]) -> list[TypeInfo]:
    if any(t.fqcn == "null" for t in types):
        return types
    return [*types, TypeInfo(type="null", fqcn="null")]


def as_array_of(types: list[TypeInfo]) -> list[TypeInfo]:
    """``T`` -> ``T[]`` for every member (variadic parameters)."""
    return [TypeInfo(type=f"{t.type}[]", fqcn=f"{t.fqcn}[]") for t in types]
