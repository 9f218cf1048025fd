"""Namespace scope and import extraction from a parsed file.

Produces one ``NamespaceScope`` per namespace declaration, plus a global
scope for code before the first declaration, each carrying the ``use``
aliases declared inside it.
"""

from __future__ import annotations

from typing import Any

from phpintel.index._internal.naming.context import ImportAlias, NamespaceScope
from phpintel.index._internal.parsing.nodes import (
    NAME_TYPES,
    end_line,
    field,
    first_child_of_type,
    node_text,
    start_line,
)
from phpintel.index.models import ImportKind

_USE_CLAUSE_TYPES = frozenset({"namespace_use_clause", "namespace_use_group_clause"})
_USE_GROUP_TYPES = frozenset({"namespace_use_group"})


def collect_namespace_scopes(root: Any) -> list[NamespaceScope]:
    """Collect namespace scopes and their imports from a parsed file."""
    last_line = end_line(root)
    top_level = list(root.named_children)
    ns_nodes = [c for c in top_level if c.type == "namespace_definition"]

    global_end = start_line(ns_nodes[0]) - 1 if ns_nodes else last_line
    global_scope = NamespaceScope(name="", start_line=1, end_line=global_end)
    scopes: list[NamespaceScope] = []
    if global_end >= 1:
        scopes.append(global_scope)

    current = global_scope
    for index, child in enumerate(top_level):
        if child.type == "namespace_definition":
            name = node_text(field(child, "name")).strip("\\")
            body = field(child, "body") or first_child_of_type(child, "compound_statement")
            if body is not None:
                scope = NamespaceScope(
                    name=name, start_line=start_line(child), end_line=end_line(child)
                )
                scopes.append(scope)
                for statement in body.named_children:
                    if statement.type == "namespace_use_declaration":
                        scope.imports.extend(_imports_from_declaration(statement))
                current = global_scope
            else:
                following = [n for n in ns_nodes if n.start_byte > child.start_byte]
                scope_end = start_line(following[0]) - 1 if following else last_line
                current = NamespaceScope(
                    name=name,
                    start_line=start_line(child),
                    end_line=max(scope_end, start_line(child)),
                )
                scopes.append(current)
        elif child.type == "namespace_use_declaration":
            current.imports.extend(_imports_from_declaration(child))

    return scopes


def _declared_kind(node: Any) -> ImportKind | None:
    for child in node.children:
        if child.type == "function":
            return ImportKind.FUNCTION
        if child.type == "const":
            return ImportKind.CONSTANT
    return None


def _imports_from_declaration(node: Any) -> list[ImportAlias]:
    line = start_line(node)
    default_kind = _declared_kind(node) or ImportKind.CLASSLIKE

    group = next((c for c in node.named_children if c.type in _USE_GROUP_TYPES), None)
    if group is not None:
        prefix_node = next(
            (
                c
                for c in node.named_children
                if c.type in NAME_TYPES and c.end_byte <= group.start_byte
            ),
            None,
        )
        prefix = node_text(prefix_node).strip("\\")
        clauses = [c for c in group.named_children if c.type in _USE_CLAUSE_TYPES]
    else:
        prefix = ""
        clauses = [c for c in node.named_children if c.type in _USE_CLAUSE_TYPES]

    imports: list[ImportAlias] = []
    for clause in clauses:
        parsed = _parse_clause(clause)
        if parsed is None:
            continue
        target, alias = parsed
        full = f"{prefix}\\{target}" if prefix else target
        kind = _declared_kind(clause) or default_kind
        imports.append(
            ImportAlias(
                alias=alias or full.rsplit("\\", 1)[-1],
                name=f"\\{full}",
                kind=kind,
                line=line,
            )
        )
    return imports


def _parse_clause(clause: Any) -> tuple[str, str | None] | None:
    target: str | None = None
    alias: str | None = None

    alias_node = field(clause, "alias")
    if alias_node is not None:
        alias = node_text(alias_node)

    seen_as = False
    for child in clause.children:
        if child.type == "as":
            seen_as = True
        elif child.type == "namespace_aliasing_clause":
            name_node = first_child_of_type(child, "name")
            if name_node is not None:
                alias = node_text(name_node)
        elif child.type in NAME_TYPES:
            if alias_node is not None and child.start_byte == alias_node.start_byte:
                continue
            if seen_as:
                alias = node_text(child)
            elif target is None:
                target = node_text(child).strip("\\")

    if not target:
        return None
    return target, alias
