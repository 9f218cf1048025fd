"""Small helpers over tree-sitter PHP nodes.

The PHP grammar has renamed a handful of node types and fields across
releases, so lookups here accept every spelling we know of.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

FUNCTION_LIKE_TYPES = frozenset(
    {
        "function_definition",
        "method_declaration",
        "anonymous_function",
        "anonymous_function_creation_expression",
        "arrow_function",
    }
)

CLOSURE_TYPES = frozenset(
    {"anonymous_function", "anonymous_function_creation_expression", "arrow_function"}
)

CLASSLIKE_TYPES = frozenset(
    {"class_declaration", "interface_declaration", "trait_declaration", "enum_declaration"}
)

NAME_TYPES = frozenset({"name", "qualified_name", "namespace_name", "relative_name"})

PARAMETER_TYPES = frozenset(
    {"simple_parameter", "variadic_parameter", "property_promotion_parameter"}
)


def node_text(node: Any) -> str:
    if node is None or node.text is None:
        return ""
    text: str = node.text.decode("utf-8", errors="replace")
    return text


def start_line(node: Any) -> int:
    """1-based line where the node starts."""
    return int(node.start_point[0]) + 1


def end_line(node: Any) -> int:
    return int(node.end_point[0]) + 1


def field(node: Any, name: str) -> Any:
    return node.child_by_field_name(name)


def named_children(node: Any) -> list[Any]:
    """Named children without comments."""
    return [c for c in node.named_children if c.type != "comment"]


def first_child_of_type(node: Any, *types: str) -> Any:
    for child in node.children:
        if child.type in types:
            return child
    return None


def children_of_type(node: Any, *types: str) -> list[Any]:
    return [c for c in node.children if c.type in types]


def has_token(node: Any, *types: str) -> bool:
    """Whether any direct child (named or not) has one of the given types."""
    return any(c.type in types for c in node.children)


def modifier_texts(node: Any) -> set[str]:
    """Lower-cased modifier keywords (public, static, abstract, ...) on a declaration."""
    result: set[str] = set()
    for child in node.children:
        if child.type.endswith("_modifier") and child.type != "reference_modifier":
            result.add(node_text(child).lower())
        elif child.type in ("static", "abstract", "final", "readonly", "var"):
            result.add(child.type)
    return result


def contains(node: Any, offset: int) -> bool:
    return bool(node.start_byte <= offset < node.end_byte)


def walk(node: Any, *, skip: frozenset[str] = frozenset()) -> Iterator[Any]:
    """Pre-order walk of named descendants, not entering ``skip`` node types.

    The root itself is always yielded.
    """
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if current is not node and current.type in skip:
            continue
        stack.extend(reversed(current.named_children))


def ancestors(node: Any) -> Iterator[Any]:
    current = node.parent
    while current is not None:
        yield current
        current = current.parent


def enclosing(node: Any, types: frozenset[str]) -> Any:
    for parent in ancestors(node):
        if parent.type in types:
            return parent
    return None


def docblock_for(node: Any) -> str | None:
    """Return the ``/** ... */`` comment immediately preceding a declaration."""
    prev = node.prev_named_sibling
    while prev is not None and prev.type == "attribute_list":
        prev = prev.prev_named_sibling
    if prev is None or prev.type != "comment":
        return None
    text = node_text(prev)
    if not text.startswith("/**"):
        return None
    return text


def declaration_body(node: Any) -> Any:
    """Body of a classlike declaration (``declaration_list``/``enum_declaration_list``)."""
    body = field(node, "body")
    if body is not None:
        return body
    return first_child_of_type(node, "declaration_list", "enum_declaration_list")


def variable_name(node: Any) -> str | None:
    """Name of a ``variable_name`` node including the ``$`` sigil."""
    if node is None or node.type != "variable_name":
        return None
    return node_text(node)


def parameter_name(param: Any) -> str:
    name_node = field(param, "name")
    if name_node is None:
        name_node = first_child_of_type(param, "variable_name")
    return node_text(name_node).lstrip("&.").lstrip("$")
