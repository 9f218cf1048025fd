"""Narrowing of a variable's types by conditions.

``analyze(condition, "$v", resolve_class)`` returns the narrowing that holds
for ``$v`` when the condition is true and the one that holds when it is
false. Supported shapes:

- ``$v instanceof X`` (negated: ``X`` is excluded)
- ``$v === null``, ``$v == null``, ``is_null($v)`` and their negations
- ``$v``, ``isset($v)``, ``!$v``
- ``is_*($v)`` classification builtins
- ``!``, ``&&``/``and``, ``||``/``or`` and parentheses combining the above
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from phpintel.index._internal.deduction.typelist import TypeList
from phpintel.index._internal.parsing.nodes import field as child_field
from phpintel.index._internal.parsing.nodes import named_children, node_text

ClassNameResolver = Callable[[Any], str | None]

CLASSIFICATION_BUILTINS: dict[str, list[str]] = {
    "is_array": ["array"],
    "is_bool": ["bool"],
    "is_callable": ["callable"],
    "is_float": ["float"],
    "is_double": ["float"],
    "is_real": ["float"],
    "is_int": ["int"],
    "is_integer": ["int"],
    "is_long": ["int"],
    "is_null": ["null"],
    "is_string": ["string"],
    "is_object": ["object"],
    "is_resource": ["resource"],
    "is_numeric": ["int", "float", "string"],
    "is_scalar": ["int", "float", "string", "bool"],
    "is_iterable": ["array", "\\Traversable"],
    "is_countable": ["array", "\\Countable"],
}

_AND_OPERATORS = frozenset({"&&", "and"})
_OR_OPERATORS = frozenset({"||", "or"})


@dataclass
class Narrowing:
    """Effect of a condition on one variable.

    ``types`` replaces the candidates when set; ``remove_null`` and
    ``exclude`` filter them.
    """

    types: list[str] | None = None
    remove_null: bool = False
    exclude: list[str] = field(default_factory=list)
    from_instanceof: bool = False


@dataclass
class FlowState:
    """Candidate types of a variable at one point of a flow scan."""

    types: TypeList = field(default_factory=TypeList)
    narrowed_by_instanceof: bool = False

    def apply(self, narrowing: Narrowing | None) -> FlowState:
        if narrowing is None:
            return self
        types = self.types
        flag = self.narrowed_by_instanceof
        if narrowing.types is not None:
            if narrowing.from_instanceof and self.narrowed_by_instanceof:
                types = types.union(narrowing.types)
            else:
                types = TypeList(narrowing.types)
            flag = narrowing.from_instanceof
        if narrowing.remove_null:
            types = types.without_null()
        if narrowing.exclude:
            types = types.without(*narrowing.exclude)
        return FlowState(types=types, narrowed_by_instanceof=flag)


def both(a: Narrowing | None, b: Narrowing | None) -> Narrowing | None:
    """Narrowing that holds when ``a`` and ``b`` both hold."""
    if a is None:
        return b
    if b is None:
        return a
    if a.types is not None and b.types is not None:
        if a.from_instanceof and b.from_instanceof:
            types: list[str] | None = list(TypeList([*a.types, *b.types]))
        else:
            types = [t for t in b.types if t in a.types] or list(b.types)
    else:
        types = a.types if a.types is not None else b.types
    return Narrowing(
        types=types,
        remove_null=a.remove_null or b.remove_null,
        exclude=[*a.exclude, *b.exclude],
        from_instanceof=a.from_instanceof or b.from_instanceof,
    )


def either(a: Narrowing | None, b: Narrowing | None) -> Narrowing | None:
    """Narrowing that holds when ``a`` or ``b`` holds."""
    if a is None or b is None:
        return None
    if a.types is not None and b.types is not None:
        return Narrowing(
            types=list(TypeList([*a.types, *b.types])),
            from_instanceof=a.from_instanceof and b.from_instanceof,
        )
    if a.types is None and b.types is None:
        return Narrowing(
            remove_null=a.remove_null and b.remove_null,
            exclude=[t for t in a.exclude if t in b.exclude],
        )
    return None


def analyze(
    condition: Any, variable: str, resolve_class: ClassNameResolver
) -> tuple[Narrowing | None, Narrowing | None]:
    """(when true, when false) narrowings of ``variable`` by ``condition``."""
    if condition is None:
        return None, None
    kind = condition.type

    if kind == "parenthesized_expression":
        inner = named_children(condition)
        return analyze(inner[0], variable, resolve_class) if inner else (None, None)

    if kind == "variable_name":
        if node_text(condition) == variable:
            return Narrowing(remove_null=True), Narrowing(types=["null"])
        return None, None

    if kind in ("assignment_expression", "reference_assignment_expression"):
        left = child_field(condition, "left")
        if left is not None and node_text(left) == variable:
            return Narrowing(remove_null=True), None
        return None, None

    if kind == "unary_op_expression":
        operand = named_children(condition)
        if _operator(condition) == "!" and operand:
            positive, negative = analyze(operand[-1], variable, resolve_class)
            return negative, positive
        return None, None

    if kind == "binary_expression":
        return _binary(condition, variable, resolve_class)

    if kind == "function_call_expression":
        return _call(condition, variable)

    return None, None


def _operator(node: Any) -> str:
    operator = child_field(node, "operator")
    if operator is not None:
        return node_text(operator).lower()
    for child in node.children:
        if not child.is_named:
            return node_text(child).lower()
    return ""


def _is_null(node: Any) -> bool:
    return node.type == "null" or node_text(node).lower() == "null"


def _binary(
    node: Any, variable: str, resolve_class: ClassNameResolver
) -> tuple[Narrowing | None, Narrowing | None]:
    operator = _operator(node)
    left = child_field(node, "left")
    right = child_field(node, "right")
    if left is None or right is None:
        return None, None

    if operator in _AND_OPERATORS:
        left_pos, left_neg = analyze(left, variable, resolve_class)
        right_pos, right_neg = analyze(right, variable, resolve_class)
        return both(left_pos, right_pos), either(left_neg, right_neg)

    if operator in _OR_OPERATORS:
        left_pos, left_neg = analyze(left, variable, resolve_class)
        right_pos, right_neg = analyze(right, variable, resolve_class)
        return either(left_pos, right_pos), both(left_neg, right_neg)

    if operator == "instanceof":
        if node_text(left) != variable:
            return None, None
        fqcn = resolve_class(right)
        if not fqcn:
            return None, None
        return (
            Narrowing(types=[fqcn], from_instanceof=True),
            Narrowing(exclude=[fqcn]),
        )

    if operator in ("===", "==", "!==", "!=", "<>"):
        compares_null = (node_text(left) == variable and _is_null(right)) or (
            node_text(right) == variable and _is_null(left)
        )
        if not compares_null:
            return None, None
        is_null = Narrowing(types=["null"])
        not_null = Narrowing(remove_null=True)
        if operator in ("===", "=="):
            return is_null, not_null
        return not_null, is_null

    return None, None


def _call(node: Any, variable: str) -> tuple[Narrowing | None, Narrowing | None]:
    name = node_text(child_field(node, "function")).lstrip("\\").lower()
    arguments = child_field(node, "arguments")
    if arguments is None:
        return None, None
    args = [named_children(a)[0] if named_children(a) else a for a in named_children(arguments)]
    if not args or node_text(args[0]) != variable:
        return None, None

    if name == "is_null":
        return Narrowing(types=["null"]), Narrowing(remove_null=True)
    if name == "isset":
        return Narrowing(remove_null=True), Narrowing(types=["null"])
    types = CLASSIFICATION_BUILTINS.get(name)
    if types is None:
        return None, None
    return Narrowing(types=list(types)), Narrowing(exclude=list(types))
