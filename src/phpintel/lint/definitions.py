"""Analyzer definitions - register all built-in lint analyzers."""

from __future__ import annotations

from typing import Any

import structlog

from phpintel.config.constants import (
    KEYWORD_TYPES,
    LANGUAGE_CONSTRUCTS,
    MAGIC_CALL_METHODS,
    SPECIAL_CLASS_NAMES,
)
from phpintel.core.errors import ResolutionError
from phpintel.index._internal.docblock import types as doctypes
from phpintel.index._internal.parsing.nodes import (
    NAME_TYPES,
    field,
    named_children,
    node_text,
    walk,
)
from phpintel.index._internal.resolution.models import FlattenedClasslike
from phpintel.index.models import ImportKind
from phpintel.lint.models import Diagnostic, Severity
from phpintel.lint.tools import LintAnalyzer, LintContext, registry

logger = structlog.get_logger()

# Parents under which a bare name is a constant fetch. Some need a field
# check as well, see _is_constant_fetch.
_CONSTANT_CONTEXTS = frozenset(
    {
        "argument",
        "array_element_initializer",
        "assignment_expression",
        "binary_expression",
        "case_statement",
        "conditional_expression",
        "echo_statement",
        "expression_statement",
        "match_condition_list",
        "parenthesized_expression",
        "return_statement",
        "simple_parameter",
        "subscript_expression",
        "unary_op_expression",
    }
)


def _is_constant_fetch(node: Any) -> bool:
    parent = node.parent
    if parent is None or parent.type not in _CONSTANT_CONTEXTS:
        return False
    if parent.type == "argument":
        return not _same(field(parent, "name"), node)
    if parent.type == "assignment_expression":
        return _same(field(parent, "right"), node)
    if parent.type == "simple_parameter":
        return _same(field(parent, "default_value"), node)
    if parent.type == "binary_expression":
        # Right operand of instanceof is a class reference
        operator = node_text(field(parent, "operator")).strip().lower()
        return not (operator == "instanceof" and _same(field(parent, "right"), node))
    if parent.type == "subscript_expression":
        return not _same(named_children(parent)[0], node)
    return True


def _same(a: Any, b: Any) -> bool:
    return a is not None and a.start_byte == b.start_byte and a.end_byte == b.end_byte


# =============================================================================
# Syntax
# =============================================================================


def check_syntax(context: LintContext) -> list[Diagnostic]:
    result: list[Diagnostic] = []
    for diag in context.document.parse_result.diagnostics:
        result.append(
            Diagnostic(
                path=context.path,
                line=diag.line,
                column=diag.column,
                message=diag.message,
                source="syntax_errors",
                severity=Severity.ERROR,
                code="syntax",
                start_offset=diag.start_offset,
                end_offset=diag.end_offset,
            )
        )
    return result


# =============================================================================
# Unknown classlikes
# =============================================================================


def _class_references(root: Any) -> list[Any]:
    """Name nodes used as classlike references."""
    found: list[Any] = []
    for node in walk(root):
        kind = node.type
        if kind == "object_creation_expression":
            found.extend(c for c in named_children(node)[:1] if c.type in NAME_TYPES)
        elif kind == "named_type":
            found.extend(c for c in named_children(node) if c.type in NAME_TYPES)
        elif kind in ("base_clause", "class_interface_clause"):
            found.extend(c for c in named_children(node) if c.type in NAME_TYPES)
        elif kind in ("scoped_call_expression", "scoped_property_access_expression"):
            scope = field(node, "scope")
            if scope is not None and scope.type in NAME_TYPES:
                found.append(scope)
        elif kind == "class_constant_access_expression":
            first = named_children(node)[:1]
            found.extend(c for c in first if c.type in NAME_TYPES)
        elif kind == "binary_expression":
            operator = node_text(field(node, "operator")).strip().lower()
            right = field(node, "right")
            if operator == "instanceof" and right is not None and right.type in NAME_TYPES:
                found.append(right)
    return found


def check_unknown_classes(context: LintContext) -> list[Diagnostic]:
    document = context.document
    result: list[Diagnostic] = []
    for node in _class_references(document.root):
        text = node_text(node).strip()
        if text.lower() in SPECIAL_CLASS_NAMES or text.lower() in KEYWORD_TYPES:
            continue
        fqcn = context.names.resolve(text, document.context_for(node), ImportKind.CLASSLIKE)
        if context.storage.classlike_exists(fqcn):
            continue
        result.append(
            context.diagnostic(
                node,
                f"Classlike **{fqcn}** is not defined or imported anywhere.",
                "unknown_classes",
                code="unknown-class",
            )
        )
    return result


# =============================================================================
# Unknown global functions and constants
# =============================================================================


def check_unknown_global_functions(context: LintContext) -> list[Diagnostic]:
    document = context.document
    result: list[Diagnostic] = []
    for node in walk(document.root):
        if node.type != "function_call_expression":
            continue
        function = field(node, "function")
        if function is None or function.type not in NAME_TYPES:
            continue
        text = node_text(function).strip()
        if text.lstrip("\\").lower() in LANGUAGE_CONSTRUCTS:
            continue
        fqsen = context.names.resolve(text, document.context_for(node), ImportKind.FUNCTION)
        if context.storage.function_exists(fqsen):
            continue
        result.append(
            context.diagnostic(
                function,
                f"Function **{fqsen}** is not defined or imported anywhere.",
                "unknown_global_functions",
                code="unknown-function",
            )
        )
    return result


def check_unknown_global_constants(context: LintContext) -> list[Diagnostic]:
    document = context.document
    result: list[Diagnostic] = []
    for node in walk(document.root):
        if node.type not in ("name", "qualified_name") or not _is_constant_fetch(node):
            continue
        text = node_text(node).strip()
        if text.lstrip("\\").lower() in ("true", "false", "null"):
            continue
        fqsen = context.names.resolve(text, document.context_for(node), ImportKind.CONSTANT)
        if context.storage.constant_exists(fqsen):
            continue
        result.append(
            context.diagnostic(
                node,
                f"Constant **{fqsen}** is not defined or imported anywhere.",
                "unknown_global_constants",
                code="unknown-constant",
            )
        )
    return result


# =============================================================================
# Unknown members
# =============================================================================

_MEMBER_NODES = {
    "member_call_expression": ("method", "object"),
    "nullsafe_member_call_expression": ("method", "object"),
    "member_access_expression": ("property", "object"),
    "nullsafe_member_access_expression": ("property", "object"),
    "scoped_call_expression": ("static_method", "scope"),
}


def _owners(context: LintContext, expression: Any) -> list[FlattenedClasslike]:
    owners: list[FlattenedClasslike] = []
    if expression is None:
        return owners
    if expression.type in NAME_TYPES or expression.type == "relative_scope":
        # Foo::, self::, parent::
        fqcn = context.engine.resolve_class_reference(expression, context.document)
        candidates = [fqcn] if fqcn else []
    else:
        candidates = list(context.engine.deduce(expression, context.document))
    for candidate in candidates:
        if not doctypes.is_class_type(candidate):
            continue
        try:
            owners.append(context.classlikes.resolve(candidate))
        except ResolutionError as e:
            logger.debug("lint_owner_unresolved", fqcn=candidate, error=e.message)
    return owners


def _has_member(owner: FlattenedClasslike, kind: str, name: str) -> bool:
    if owner.get_method(MAGIC_CALL_METHODS[kind]) is not None:
        return True
    if kind == "property":
        return owner.get_property(name) is not None
    return owner.get_method(name) is not None


def check_unknown_members(context: LintContext) -> list[Diagnostic]:
    result: list[Diagnostic] = []
    for node in walk(context.document.root):
        shape = _MEMBER_NODES.get(node.type)
        if shape is None:
            continue
        kind, owner_field = shape
        name = field(node, "name")
        if name is None or name.type != "name":
            # $object->$dynamic
            continue
        member = node_text(name)
        for owner in _owners(context, field(node, owner_field)):
            if _has_member(owner, kind, member):
                continue
            label = "Property" if kind == "property" else "Method"
            result.append(
                context.diagnostic(
                    name,
                    f"{label} **{member}** does not exist on type **{owner.fqcn}**.",
                    "unknown_members",
                    severity=Severity.WARNING,
                    code=f"unknown-{'property' if kind == 'property' else 'method'}",
                )
            )
    return result


registry.register(
    LintAnalyzer(
        analyzer_id="syntax_errors",
        name="Syntax errors",
        config_key="syntax_errors",
        description="Recoverable parse errors reported by the parser.",
    ),
    check=check_syntax,
)

registry.register(
    LintAnalyzer(
        analyzer_id="unknown_classes",
        name="Unknown classlikes",
        config_key="unknown_classes",
        description="Classlike references (new, type hints, extends, implements, "
        "static access, instanceof) that are not indexed.",
    ),
    check=check_unknown_classes,
)

registry.register(
    LintAnalyzer(
        analyzer_id="unknown_global_functions",
        name="Unknown global functions",
        config_key="unknown_global_functions",
        description="Calls to functions that are not indexed.",
    ),
    check=check_unknown_global_functions,
)

registry.register(
    LintAnalyzer(
        analyzer_id="unknown_global_constants",
        name="Unknown global constants",
        config_key="unknown_global_constants",
        description="Constant fetches that are not indexed.",
    ),
    check=check_unknown_global_constants,
)

registry.register(
    LintAnalyzer(
        analyzer_id="unknown_members",
        name="Unknown members",
        config_key="unknown_members",
        description="Method calls and property fetches on known classlikes that lack the member.",
    ),
    check=check_unknown_members,
)
