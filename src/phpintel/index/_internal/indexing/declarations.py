"""Declaration extraction (indexing pass 2).

A single traversal of a parsed file that persists:

- global constants (``const X = ...;``)
- ``define('X', ...)`` constants
- global functions with their parameters
- classes, interfaces and traits with their constants, properties
  (including promoted constructor parameters and ``@property`` tags) and
  methods (including ``@method`` tags)

Names are qualified against the namespace scopes committed by pass 1.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from phpintel.index._internal.db.storage import IndexStorage
from phpintel.index._internal.docblock.parser import Docblock, DocblockParser
from phpintel.index._internal.indexing.signatures import ParameterInfo, SignatureExtractor
from phpintel.index._internal.naming.context import (
    NamespaceContext,
    NamespaceScope,
    context_for_line,
)
from phpintel.index._internal.naming.types import (
    NO_BINDING,
    ClassBinding,
    TypeResolver,
    types_from_strings,
    with_null,
)
from phpintel.index._internal.parsing.nodes import (
    CLASSLIKE_TYPES,
    NAME_TYPES,
    children_of_type,
    declaration_body,
    docblock_for,
    end_line,
    field,
    first_child_of_type,
    has_token,
    modifier_texts,
    named_children,
    node_text,
    start_line,
    walk,
)
from phpintel.index.models import (
    Classlike,
    ClasslikeKind,
    ConstantDef,
    FunctionDef,
    ParameterDef,
    PropertyDef,
    TypeInfo,
    Visibility,
    dump_types,
)

logger = structlog.get_logger()

ExpressionDeducer = Callable[[Any], list[str]]

_KIND_BY_NODE = {
    "class_declaration": ClasslikeKind.CLASS,
    "interface_declaration": ClasslikeKind.INTERFACE,
    "trait_declaration": ClasslikeKind.TRAIT,
}

# Subtrees whose declarations are not global or are handled by the classlike extractor.
_SKIP_TYPES = CLASSLIKE_TYPES | {"anonymous_class", "declaration_list"}


@dataclass
class DeclarationStats:
    """Counts of rows written by one pass-2 run."""

    constants: int = 0
    functions: int = 0
    classlikes: int = 0
    members: int = 0


def _unquote(literal: str) -> str | None:
    if len(literal) >= 2 and literal[0] == literal[-1] and literal[0] in ("'", '"'):
        return literal[1:-1].replace("\\\\", "\\")
    return None


class DeclarationIndexer:
    """Extracts and persists the declarations of one file.

    Usage::

        indexer = DeclarationIndexer(storage, type_resolver, DocblockParser())
        stats = indexer.index(file_id, root_node, scopes, deduce)
    """

    def __init__(
        self,
        storage: IndexStorage,
        types: TypeResolver,
        docblocks: DocblockParser,
    ) -> None:
        self._storage = storage
        self._types = types
        self._docblocks = docblocks
        self._signatures = SignatureExtractor(types)

    def index(
        self,
        file_id: int,
        root: Any,
        scopes: list[NamespaceScope],
        deduce: ExpressionDeducer,
    ) -> DeclarationStats:
        run = _IndexRun(self, file_id, scopes, deduce)
        for node in walk(root, skip=_SKIP_TYPES):
            if node.type == "const_declaration":
                run.global_constants(node)
            elif node.type == "function_call_expression":
                run.define(node)
            elif node.type == "function_definition":
                run.global_function(node)
            elif node.type in _KIND_BY_NODE:
                run.classlike(node)
        return run.stats


class _IndexRun:
    """State for one ``DeclarationIndexer.index`` call."""

    def __init__(
        self,
        owner: DeclarationIndexer,
        file_id: int,
        scopes: list[NamespaceScope],
        deduce: ExpressionDeducer,
    ) -> None:
        self.storage = owner._storage
        self.types = owner._types
        self.docblocks = owner._docblocks
        self.signatures = owner._signatures
        self.file_id = file_id
        self.scopes = scopes
        self.deduce = deduce
        self.stats = DeclarationStats()

    def context(self, node: Any) -> NamespaceContext:
        return context_for_line(self.scopes, start_line(node))

    def docblock(self, node: Any) -> tuple[Docblock, bool]:
        raw = docblock_for(node)
        parsed = self.docblocks.parse(raw)
        return parsed, raw is not None and parsed.has_own_documentation

    def deduce_types(self, node: Any) -> list[TypeInfo]:
        if node is None:
            return []
        return types_from_strings(self.deduce(node))

    # =========================================================================
    # Global constants
    # =========================================================================

    def global_constants(self, node: Any) -> None:
        context = self.context(node)
        docblock, has_doc = self.docblock(node)
        for element in children_of_type(node, "const_element"):
            parts = named_children(element)
            if not parts:
                continue
            name = node_text(parts[0])
            value = parts[-1] if len(parts) > 1 else None
            var_tag = docblock.var_for(None)
            if var_tag is not None:
                types = self.types.resolve_text(var_tag.type, context)
            else:
                types = self.deduce_types(value)
            self.storage.insert_constant(
                ConstantDef(
                    file_id=self.file_id,
                    fqsen=context.prefixed(name),
                    name=name,
                    start_line=start_line(element),
                    end_line=end_line(element),
                    default_value=node_text(value) if value is not None else None,
                    types_json=dump_types(types),
                    is_deprecated=docblock.is_deprecated,
                    has_docblock=has_doc,
                    short_description=docblock.summary,
                    long_description=docblock.description,
                    type_description=var_tag.description if var_tag else None,
                )
            )
            self.stats.constants += 1

    def define(self, node: Any) -> None:
        function = field(node, "function")
        if function is None or node_text(function).lstrip("\\").lower() != "define":
            return
        arguments = field(node, "arguments") or first_child_of_type(node, "arguments")
        if arguments is None:
            return
        args = [named_children(a)[0] for a in named_children(arguments) if named_children(a)]
        if not args or args[0].type not in ("string", "encapsed_string"):
            return
        name = _unquote(node_text(args[0]))
        if not name:
            return

        fqsen = "\\" + name.lstrip("\\")
        value = args[1] if len(args) > 1 else None
        types = self.deduce_types(value) or [TypeInfo(type="mixed", fqcn="mixed")]
        docblock, has_doc = self.docblock(node.parent) if node.parent is not None else (
            Docblock(),
            False,
        )
        self.storage.insert_constant(
            ConstantDef(
                file_id=self.file_id,
                fqsen=fqsen,
                name=fqsen.rsplit("\\", 1)[-1],
                start_line=start_line(node),
                end_line=end_line(node),
                default_value=node_text(value) if value is not None else None,
                types_json=dump_types(types),
                is_deprecated=docblock.is_deprecated,
                has_docblock=has_doc,
                short_description=docblock.summary,
                long_description=docblock.description,
            )
        )
        self.stats.constants += 1

    # =========================================================================
    # Functions
    # =========================================================================

    def global_function(self, node: Any) -> None:
        name = node_text(field(node, "name"))
        if not name:
            return
        context = self.context(node)
        self.function_like(
            node,
            context,
            NO_BINDING,
            fqsen=context.prefixed(name),
            classlike_id=None,
        )
        self.stats.functions += 1

    def function_like(
        self,
        node: Any,
        context: NamespaceContext,
        binding: ClassBinding,
        *,
        fqsen: str | None,
        classlike_id: int | None,
        visibility: str = Visibility.PUBLIC.value,
        is_static: bool = False,
        is_abstract: bool = False,
        is_final: bool = False,
    ) -> list[ParameterInfo]:
        docblock, has_doc = self.docblock(node)
        params = self.signatures.parameters(node, docblock, context, binding, self.deduce)
        return_types = self.signatures.return_types(node, docblock, context, binding)
        throws = [
            {
                "type": self.types.resolve_class_name(tag.type, context, binding),
                "description": tag.description,
            }
            for tag in docblock.throws
        ]
        function_id = self.storage.insert_function(
            FunctionDef(
                file_id=self.file_id,
                classlike_id=classlike_id,
                fqsen=fqsen,
                name=node_text(field(node, "name")),
                start_line=start_line(node),
                end_line=end_line(node),
                visibility=visibility,
                is_static=is_static,
                is_abstract=is_abstract,
                is_final=is_final,
                returns_reference=has_token(node, "reference_modifier", "&"),
                return_types_json=dump_types(return_types),
                return_description=docblock.return_tag.description if docblock.return_tag else None,
                throws_json=json.dumps(throws),
                is_deprecated=docblock.is_deprecated,
                has_docblock=has_doc,
                short_description=docblock.summary,
                long_description=docblock.description,
            )
        )
        for position, param in enumerate(params):
            self.storage.insert_parameter(
                ParameterDef(
                    function_id=function_id,
                    position=position,
                    name=param.name,
                    types_json=dump_types(param.types),
                    default_value=param.default_value,
                    description=param.description,
                    is_nullable=param.is_nullable,
                    is_reference=param.is_reference,
                    is_variadic=param.is_variadic,
                    is_promoted=param.is_promoted,
                )
            )
        return params

    # =========================================================================
    # Classlikes
    # =========================================================================

    def classlike(self, node: Any) -> None:
        kind = _KIND_BY_NODE[node.type]
        name = node_text(field(node, "name"))
        if not name:
            return
        context = self.context(node)
        fqcn = context.prefixed(name)
        modifiers = modifier_texts(node)
        docblock, has_doc = self.docblock(node)

        parents: list[str] = []
        base_clause = first_child_of_type(node, "base_clause")
        if base_clause is not None:
            parents = self._resolve_names(base_clause, context)
        if kind == ClasslikeKind.CLASS:
            parents = parents[:1]

        interfaces: list[str] = []
        interface_clause = first_child_of_type(node, "class_interface_clause")
        if interface_clause is not None:
            interfaces = self._resolve_names(interface_clause, context)

        binding = ClassBinding(
            self_fqcn=fqcn,
            parent_fqcn=parents[0] if kind == ClasslikeKind.CLASS and parents else None,
        )

        body = declaration_body(node)
        traits: list[str] = []
        aliases: list[dict[str, Any]] = []
        precedences: list[dict[str, Any]] = []
        if body is not None:
            for use in children_of_type(body, "use_declaration"):
                self._trait_use(use, context, traits, aliases, precedences)

        classlike_id = self.storage.insert_classlike(
            Classlike(
                file_id=self.file_id,
                fqcn=fqcn,
                name=name,
                kind=kind.value,
                start_line=start_line(node),
                end_line=end_line(node),
                is_abstract="abstract" in modifiers,
                is_final="final" in modifiers,
                is_deprecated=docblock.is_deprecated,
                has_docblock=has_doc,
                short_description=docblock.summary,
                long_description=docblock.description,
                parents_json=json.dumps(parents),
                interfaces_json=json.dumps(interfaces),
                traits_json=json.dumps(traits),
                trait_aliases_json=json.dumps(aliases),
                trait_precedences_json=json.dumps(precedences),
            )
        )
        self.stats.classlikes += 1

        if body is not None:
            for member in body.named_children:
                if member.type == "const_declaration":
                    self._class_constants(member, classlike_id, context, binding)
                elif member.type == "property_declaration":
                    self._properties(member, classlike_id, context, binding)
                elif member.type == "method_declaration":
                    self._method(member, classlike_id, context, binding, kind)

        self._magic_members(docblock, classlike_id, node, context, binding)
        logger.debug("classlike_indexed", fqcn=fqcn, kind=kind.value)

    def _resolve_names(self, clause: Any, context: NamespaceContext) -> list[str]:
        return [
            self.types.resolve_class_name(node_text(n), context)
            for n in clause.named_children
            if n.type in NAME_TYPES
        ]

    def _trait_use(
        self,
        node: Any,
        context: NamespaceContext,
        traits: list[str],
        aliases: list[dict[str, Any]],
        precedences: list[dict[str, Any]],
    ) -> None:
        for name_node in node.named_children:
            if name_node.type in NAME_TYPES:
                fqcn = self.types.resolve_class_name(node_text(name_node), context)
                if fqcn not in traits:
                    traits.append(fqcn)

        use_list = first_child_of_type(node, "use_list")
        if use_list is None:
            return
        for clause in named_children(use_list):
            parts = named_children(clause)
            if not parts:
                continue
            trait, method = self._trait_method_reference(parts[0], context)
            if clause.type == "use_instead_of_clause":
                precedences.append(
                    {
                        "trait": trait,
                        "method": method,
                        "insteadof": [
                            self.types.resolve_class_name(node_text(p), context)
                            for p in parts[1:]
                            if p.type in NAME_TYPES
                        ],
                    }
                )
            elif clause.type == "use_as_clause":
                visibility = next(
                    (node_text(p).lower() for p in parts[1:] if p.type == "visibility_modifier"),
                    None,
                )
                alias = next((node_text(p) for p in parts[1:] if p.type == "name"), None)
                aliases.append(
                    {"trait": trait, "method": method, "alias": alias, "visibility": visibility}
                )

    def _trait_method_reference(
        self, node: Any, context: NamespaceContext
    ) -> tuple[str | None, str]:
        """``T::m`` -> (FQCN of T, ``m``); bare ``m`` -> (None, ``m``)."""
        if node.type == "class_constant_access_expression":
            parts = named_children(node)
            trait = self.types.resolve_class_name(node_text(parts[0]), context)
            return trait, node_text(parts[-1])
        return None, node_text(node)

    def _class_constants(
        self,
        node: Any,
        classlike_id: int,
        context: NamespaceContext,
        binding: ClassBinding,
    ) -> None:
        docblock, has_doc = self.docblock(node)
        visibility = self._visibility(node)
        for element in children_of_type(node, "const_element"):
            parts = named_children(element)
            if not parts:
                continue
            value = parts[-1] if len(parts) > 1 else None
            var_tag = docblock.var_for(None)
            if var_tag is not None:
                types = self.types.resolve_text(var_tag.type, context, binding)
            else:
                types = self.deduce_types(value)
            self.storage.insert_constant(
                ConstantDef(
                    file_id=self.file_id,
                    classlike_id=classlike_id,
                    name=node_text(parts[0]),
                    start_line=start_line(element),
                    end_line=end_line(element),
                    default_value=node_text(value) if value is not None else None,
                    visibility=visibility,
                    types_json=dump_types(types),
                    is_deprecated=docblock.is_deprecated,
                    has_docblock=has_doc,
                    short_description=docblock.summary,
                    long_description=docblock.description,
                    type_description=var_tag.description if var_tag else None,
                )
            )
            self.stats.members += 1

    def _properties(
        self,
        node: Any,
        classlike_id: int,
        context: NamespaceContext,
        binding: ClassBinding,
    ) -> None:
        docblock, has_doc = self.docblock(node)
        modifiers = modifier_texts(node)
        visibility = self._visibility(node)
        hint_types = self.types.resolve_hint(field(node, "type"), context, binding)

        for element in children_of_type(node, "property_element"):
            var_node = field(element, "name") or first_child_of_type(element, "variable_name")
            name = node_text(var_node).lstrip("$")
            if not name:
                continue
            value = field(element, "default_value")
            if value is None:
                initializer = first_child_of_type(element, "property_initializer")
                if initializer is not None and initializer.named_children:
                    value = initializer.named_children[-1]

            var_tag = docblock.var_for(f"${name}")
            if var_tag is not None:
                types = self.types.resolve_text(var_tag.type, context, binding)
            elif hint_types:
                types = hint_types
            else:
                types = self.deduce_types(value)

            self.storage.insert_property(
                PropertyDef(
                    classlike_id=classlike_id,
                    name=name,
                    start_line=start_line(element),
                    end_line=end_line(element),
                    default_value=node_text(value) if value is not None else None,
                    visibility=visibility,
                    is_static="static" in modifiers,
                    is_readonly="readonly" in modifiers,
                    types_json=dump_types(types),
                    is_deprecated=docblock.is_deprecated,
                    has_docblock=has_doc,
                    short_description=docblock.summary,
                    long_description=docblock.description,
                    type_description=var_tag.description if var_tag else None,
                )
            )
            self.stats.members += 1

    def _method(
        self,
        node: Any,
        classlike_id: int,
        context: NamespaceContext,
        binding: ClassBinding,
        kind: ClasslikeKind,
    ) -> None:
        modifiers = modifier_texts(node)
        params = self.function_like(
            node,
            context,
            binding,
            fqsen=None,
            classlike_id=classlike_id,
            visibility=self._visibility(node),
            is_static="static" in modifiers,
            is_abstract="abstract" in modifiers or kind == ClasslikeKind.INTERFACE,
            is_final="final" in modifiers,
        )
        self.stats.members += 1

        for param in params:
            if not param.is_promoted:
                continue
            self.storage.insert_property(
                PropertyDef(
                    classlike_id=classlike_id,
                    name=param.name,
                    start_line=start_line(param.node),
                    end_line=end_line(param.node),
                    default_value=param.default_value,
                    visibility=param.visibility or Visibility.PUBLIC.value,
                    is_readonly=param.is_readonly,
                    types_json=dump_types(param.types),
                    short_description=param.description,
                    has_docblock=param.description is not None,
                )
            )
            self.stats.members += 1

    def _magic_members(
        self,
        docblock: Docblock,
        classlike_id: int,
        node: Any,
        context: NamespaceContext,
        binding: ClassBinding,
    ) -> None:
        line = start_line(node)
        for prop in docblock.properties:
            self.storage.insert_property(
                PropertyDef(
                    classlike_id=classlike_id,
                    name=prop.name,
                    start_line=line,
                    end_line=line,
                    is_static=prop.is_static,
                    is_magic=True,
                    is_readonly=not prop.is_writable,
                    types_json=dump_types(self.types.resolve_text(prop.type, context, binding)),
                    has_docblock=prop.description is not None,
                    short_description=prop.description,
                )
            )
            self.stats.members += 1

        for method in docblock.methods:
            function_id = self.storage.insert_function(
                FunctionDef(
                    file_id=self.file_id,
                    classlike_id=classlike_id,
                    name=method.name,
                    start_line=line,
                    end_line=line,
                    is_static=method.is_static,
                    is_magic=True,
                    return_types_json=dump_types(
                        self.types.resolve_text(method.return_type, context, binding)
                    ),
                    has_docblock=method.description is not None,
                    short_description=method.description,
                )
            )
            for position, param in enumerate(method.parameters):
                types = self.types.resolve_text(param.type, context, binding)
                if param.default_value is not None and param.default_value.lower() == "null":
                    types = with_null(types) if types else types
                self.storage.insert_parameter(
                    ParameterDef(
                        function_id=function_id,
                        position=position,
                        name=param.name,
                        types_json=dump_types(types),
                        default_value=param.default_value,
                        is_nullable=any(t.fqcn == "null" for t in types),
                        is_reference=param.is_reference,
                        is_variadic=param.is_variadic,
                    )
                )
            self.stats.members += 1

    @staticmethod
    def _visibility(node: Any) -> str:
        modifiers = modifier_texts(node)
        for candidate in (Visibility.PRIVATE, Visibility.PROTECTED, Visibility.PUBLIC):
            if candidate.value in modifiers:
                return candidate.value
        return Visibility.PUBLIC.value


__all__ = ["DeclarationIndexer", "DeclarationStats"]
