"""Classlike resolution: merges own, trait, parent and interface members.

Precedence, most specific first:

1. members declared in the classlike body;
2. members of directly used traits (``insteadof`` picks between traits,
   otherwise the earlier ``use`` wins; ``as`` aliases add names or change
   visibility);
3. members of parents;
4. members of interfaces (constants merged by union, collisions reported).

Nothing is cached: every call reads the index afresh.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TypeVar

import structlog

from phpintel.config.models import AnalysisConfig
from phpintel.core.errors import CircularDependencyError, UnknownClasslikeError
from phpintel.index._internal.db.storage import IndexStorage
from phpintel.index._internal.resolution.models import (
    FlattenedClasslike,
    ResolvedConstant,
    ResolvedMember,
    ResolvedMethod,
    ResolvedParameter,
    ResolvedProperty,
)
from phpintel.index.models import Classlike, ClasslikeKind, ConstantDef, FunctionDef, PropertyDef

logger = structlog.get_logger()

M = TypeVar("M", bound=ResolvedMember)


def _copy(member: M, **changes: object) -> M:
    changes.setdefault("implements", list(member.implements))
    return replace(member, **changes)  # type: ignore[arg-type]


def _append_unique(target: list[str], items: list[str]) -> None:
    lowered = {t.lower() for t in target}
    for item in items:
        if item.lower() not in lowered:
            target.append(item)
            lowered.add(item.lower())


class ClasslikeResolver:
    """Builds ``FlattenedClasslike`` views from the index.

    Usage::

        resolver = ClasslikeResolver(storage)
        flat = resolver.resolve("\\\\App\\\\Child")
        flat.get_method("run").declaring_fqcn
    """

    def __init__(self, storage: IndexStorage, config: AnalysisConfig | None = None) -> None:
        self._storage = storage
        self._max_depth = (config or AnalysisConfig()).max_resolution_depth

    def resolve(self, fqcn: str) -> FlattenedClasslike:
        """Resolve ``fqcn`` with everything it inherits.

        Raises:
            UnknownClasslikeError: If ``fqcn`` is not indexed.
            CircularDependencyError: If the inheritance or trait graph loops
                back onto ``fqcn``, or is deeper than the configured bound.
        """
        return self._resolve(fqcn, [])

    def _resolve(self, fqcn: str, resolving: list[str]) -> FlattenedClasslike:
        if any(r.lower() == fqcn.lower() for r in resolving):
            raise CircularDependencyError.for_chain([*resolving, fqcn])
        if len(resolving) >= self._max_depth:
            raise CircularDependencyError.depth_exceeded(fqcn, self._max_depth)

        row = self._storage.find_classlike(fqcn)
        if row is None:
            raise UnknownClasslikeError.for_fqcn(fqcn)

        chain = [*resolving, row.fqcn]
        result = self._own(row)
        self._merge_traits(result, row, chain)
        for parent in row.parents:
            _append_unique(result.parents, [parent])
            parent_flat = self._resolve_ancestor(parent, chain)
            if parent_flat is not None:
                self._merge_parent(result, parent_flat)
        for interface in row.interfaces:
            _append_unique(result.interfaces, [interface])
            interface_flat = self._resolve_ancestor(interface, chain)
            if interface_flat is not None:
                self._merge_interface(result, interface_flat)
        return result

    def _resolve_ancestor(self, fqcn: str, chain: list[str]) -> FlattenedClasslike | None:
        try:
            return self._resolve(fqcn, chain)
        except UnknownClasslikeError:
            logger.debug("unknown_ancestor", fqcn=fqcn, child=chain[-1])
            return None

    # =========================================================================
    # Own members
    # =========================================================================

    def _own(self, row: Classlike) -> FlattenedClasslike:
        assert row.id is not None
        result = FlattenedClasslike(
            fqcn=row.fqcn,
            name=row.name,
            kind=row.kind,
            file_path=self._storage.get_file_path(row.file_id),
            start_line=row.start_line,
            end_line=row.end_line,
            is_abstract=row.is_abstract,
            is_final=row.is_final,
            is_deprecated=row.is_deprecated,
            has_docblock=row.has_docblock,
            short_description=row.short_description,
            long_description=row.long_description,
            direct_parents=row.parents,
            direct_interfaces=row.interfaces,
            direct_traits=row.traits,
        )
        for const in self._storage.get_class_constants(row.id):
            result.constants[const.name] = self._constant(const, row.fqcn)
        # A real declaration beats an @property/@method tag of the same name
        for prop in self._storage.get_properties(row.id):
            if prop.name in result.properties and prop.is_magic:
                continue
            result.properties[prop.name] = self._property(prop, row.fqcn)
        for method in self._storage.get_methods(row.id):
            key = method.name.lower()
            if key in result.methods and method.is_magic:
                continue
            result.methods[key] = self._method(method, row.fqcn)
        return result

    @staticmethod
    def _constant(row: ConstantDef, fqcn: str) -> ResolvedConstant:
        return ResolvedConstant(
            name=row.name,
            declaring_fqcn=fqcn,
            visibility=row.visibility,
            is_static=True,
            types=row.types,
            start_line=row.start_line,
            end_line=row.end_line,
            is_deprecated=row.is_deprecated,
            has_docblock=row.has_docblock,
            short_description=row.short_description,
            long_description=row.long_description,
            default_value=row.default_value,
            type_description=row.type_description,
        )

    @staticmethod
    def _property(row: PropertyDef, fqcn: str) -> ResolvedProperty:
        return ResolvedProperty(
            name=row.name,
            declaring_fqcn=fqcn,
            visibility=row.visibility,
            is_static=row.is_static,
            types=row.types,
            start_line=row.start_line,
            end_line=row.end_line,
            is_deprecated=row.is_deprecated,
            has_docblock=row.has_docblock,
            short_description=row.short_description,
            long_description=row.long_description,
            default_value=row.default_value,
            is_magic=row.is_magic,
            is_readonly=row.is_readonly,
            type_description=row.type_description,
        )

    def _method(self, row: FunctionDef, fqcn: str) -> ResolvedMethod:
        assert row.id is not None
        return ResolvedMethod(
            name=row.name,
            declaring_fqcn=fqcn,
            visibility=row.visibility,
            is_static=row.is_static,
            types=row.return_types,
            start_line=row.start_line,
            end_line=row.end_line,
            is_deprecated=row.is_deprecated,
            has_docblock=row.has_docblock,
            short_description=row.short_description,
            long_description=row.long_description,
            parameters=[
                ResolvedParameter(
                    name=p.name,
                    types=p.types,
                    default_value=p.default_value,
                    description=p.description,
                    is_nullable=p.is_nullable,
                    is_reference=p.is_reference,
                    is_variadic=p.is_variadic,
                    is_promoted=p.is_promoted,
                )
                for p in self._storage.get_parameters(row.id)
            ],
            return_description=row.return_description,
            is_abstract=row.is_abstract,
            is_final=row.is_final,
            is_magic=row.is_magic,
            returns_reference=row.returns_reference,
            throws=row.throws,
        )

    # =========================================================================
    # Traits
    # =========================================================================

    def _merge_traits(self, result: FlattenedClasslike, row: Classlike, chain: list[str]) -> None:
        traits: dict[str, FlattenedClasslike] = {}
        for trait in row.traits:
            _append_unique(result.traits, [trait])
            flat = self._resolve_ancestor(trait, chain)
            if flat is None:
                continue
            traits[trait.lower()] = flat
            _append_unique(result.traits, flat.traits)

        excluded: set[tuple[str, str]] = set()
        for rule in row.trait_precedences:
            method = str(rule.get("method", "")).lower()
            for loser in rule.get("insteadof", []):
                excluded.add((loser.lower(), method))

        own_methods = set(result.methods)
        from_traits: set[str] = set()
        for trait_key, flat in traits.items():
            for key, method in flat.methods.items():
                if (trait_key, key) in excluded or key in own_methods or key in from_traits:
                    continue
                result.methods[key] = _copy(method)
                from_traits.add(key)
            for name, prop in flat.properties.items():
                result.properties.setdefault(name, _copy(prop))
            for name, const in flat.constants.items():
                result.constants.setdefault(name, _copy(const))

        for alias in row.trait_aliases:
            method_key = str(alias.get("method", "")).lower()
            source = self._trait_method(traits, alias.get("trait"), method_key)
            if source is None:
                continue
            visibility = alias.get("visibility") or source.visibility
            alias_name = alias.get("alias")
            if alias_name:
                if alias_name.lower() not in own_methods:
                    result.methods[alias_name.lower()] = _copy(
                        source, name=alias_name, visibility=visibility
                    )
            elif method_key in from_traits:
                result.methods[method_key] = _copy(
                    result.methods[method_key], visibility=visibility
                )

    @staticmethod
    def _trait_method(
        traits: dict[str, FlattenedClasslike], trait: str | None, method_key: str
    ) -> ResolvedMethod | None:
        if trait:
            flat = traits.get(trait.lower())
            return flat.get_method(method_key) if flat is not None else None
        for flat in traits.values():
            found = flat.get_method(method_key)
            if found is not None:
                return found
        return None

    # =========================================================================
    # Parents and interfaces
    # =========================================================================

    def _merge_parent(self, result: FlattenedClasslike, parent: FlattenedClasslike) -> None:
        _append_unique(result.parents, parent.parents)
        _append_unique(result.interfaces, parent.interfaces)
        _append_unique(result.traits, parent.traits)
        if result.kind == ClasslikeKind.INTERFACE.value:
            self._merge_interface_constants(result, parent)
        else:
            self._merge_inherited(result.constants, parent.constants)
        self._merge_inherited(result.properties, parent.properties)
        self._merge_inherited(result.methods, parent.methods)

    def _merge_inherited(self, target: dict[str, M], inherited: dict[str, M]) -> None:
        for key, member in inherited.items():
            existing = target.get(key)
            if existing is None:
                target[key] = _copy(member, is_inherited=True)
                continue
            if existing.is_inherited:
                continue
            if existing.overrides is None:
                existing.overrides = member.declaring_fqcn
            _append_unique(existing.implements, member.implements)
            self._inherit_documentation(existing, member)

    def _merge_interface(self, result: FlattenedClasslike, interface: FlattenedClasslike) -> None:
        _append_unique(result.interfaces, interface.parents)
        _append_unique(result.interfaces, interface.interfaces)
        self._merge_interface_constants(result, interface)

        for key, method in interface.methods.items():
            existing = result.methods.get(key)
            if existing is None:
                result.methods[key] = _copy(method, is_inherited=True)
                continue
            _append_unique(existing.implements, [method.declaring_fqcn])
            if not existing.is_inherited:
                self._inherit_documentation(existing, method)

    @staticmethod
    def _merge_interface_constants(
        result: FlattenedClasslike, interface: FlattenedClasslike
    ) -> None:
        for name, const in interface.constants.items():
            existing = result.constants.get(name)
            if existing is None:
                result.constants[name] = _copy(const, is_inherited=True)
            elif existing.is_inherited and existing.declaring_fqcn != const.declaring_fqcn:
                result.constant_conflicts.append(
                    {
                        "name": name,
                        "kept": existing.declaring_fqcn,
                        "discarded": const.declaring_fqcn,
                    }
                )

    @staticmethod
    def _inherit_documentation(member: ResolvedMember, ancestor: ResolvedMember) -> None:
        """Fill an undocumented override from the member it replaces."""
        if member.has_docblock:
            return
        member.short_description = member.short_description or ancestor.short_description
        member.long_description = member.long_description or ancestor.long_description
        member.is_deprecated = member.is_deprecated or ancestor.is_deprecated
        if not member.types:
            member.types = list(ancestor.types)
        if isinstance(member, ResolvedMethod) and isinstance(ancestor, ResolvedMethod):
            member.return_description = member.return_description or ancestor.return_description
            if not member.throws:
                member.throws = list(ancestor.throws)
            by_name = {p.name: p for p in ancestor.parameters}
            for param in member.parameters:
                source = by_name.get(param.name)
                if source is None:
                    continue
                if not param.types:
                    param.types = list(source.types)
                param.description = param.description or source.description
