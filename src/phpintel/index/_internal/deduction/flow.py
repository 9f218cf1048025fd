"""Flow analysis of local variables.

The types of ``$v`` at a byte position are found by scanning the innermost
function-like scope (or the file, outside any function) from its start up to
the position:

- an inline ``@var`` tag for ``$v`` before the position wins outright;
- parameters and closure ``use`` captures give the initial types;
- statements that end before the position apply their assignments to ``$v``
  in source order, including those in branches (best effort);
- the statement containing the position is entered, applying the narrowing
  of the ``if``/``elseif``/``else``, loop, ternary or ``&&``/``||`` branch the
  position lies in. Narrowing never leaks out of its branch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from phpintel.index._internal.deduction.conditions import FlowState, Narrowing, analyze
from phpintel.index._internal.deduction.typelist import EMPTY, TypeList
from phpintel.index._internal.docblock import types as doctypes
from phpintel.index._internal.naming.types import type_strings
from phpintel.index._internal.parsing.nodes import (
    CLASSLIKE_TYPES,
    CLOSURE_TYPES,
    FUNCTION_LIKE_TYPES,
    children_of_type,
    contains,
    enclosing,
    first_child_of_type,
    named_children,
    node_text,
    start_line,
    walk,
)
from phpintel.index._internal.parsing.nodes import field as child_field

if TYPE_CHECKING:
    from phpintel.index._internal.deduction.engine import DeductionQuery, TypeDeductionEngine

# Nested scopes whose bodies never affect the variables of the scope around them.
_OPAQUE_TYPES = FUNCTION_LIKE_TYPES | CLASSLIKE_TYPES | {"anonymous_class"}

_ASSIGNMENT_TYPES = frozenset({"assignment_expression", "reference_assignment_expression"})

_BLOCK_TYPES = frozenset({"compound_statement", "colon_block"})


@dataclass
class _Event:
    """Something that sets the variable, ordered by where it completes."""

    end: int
    kind: str  # "assign" | "foreach" | "catch" | "static" | "unknown"
    node: Any


class VariableFlow:
    """Answers "what may ``$v`` hold here" for one engine."""

    def __init__(self, engine: TypeDeductionEngine) -> None:
        self._engine = engine

    def types_at(self, name: str, anchor: Any, position: int, query: DeductionQuery) -> TypeList:
        """Types of variable ``name`` (with ``$``) just before ``position``.

        ``anchor`` is any node at the position; it selects the scope.
        """
        scope = enclosing(anchor, FUNCTION_LIKE_TYPES)

        override = self._var_override(name, scope, position, query)
        if override is not None:
            return override

        if scope is not None and scope.type == "arrow_function" and not self._is_parameter(
            scope, name
        ):
            return self.types_at(name, scope, scope.start_byte, query)

        state = FlowState(types=self._initial_types(name, scope, query))
        if scope is None:
            body = query.document.root
        else:
            body = child_field(scope, "body") or first_child_of_type(scope, "compound_statement")
        if body is None:
            return state.types
        if body.type != "compound_statement" and body.type != "program":
            # Arrow function bodies are a single expression
            state = self._within_expression(body, name, position, state, query)
            return state.types
        return self._statements(named_children(body), name, position, state, query).types

    # =========================================================================
    # Initial state
    # =========================================================================

    def _is_parameter(self, scope: Any, name: str) -> bool:
        params = child_field(scope, "parameters")
        if params is None:
            return False
        return any(
            node_text(child_field(p, "name") or first_child_of_type(p, "variable_name", "by_ref"))
            .lstrip("&")
            == name
            for p in params.named_children
        )

    def _initial_types(self, name: str, scope: Any, query: DeductionQuery) -> TypeList:
        if scope is None:
            return EMPTY
        if self._is_parameter(scope, name):
            return self._engine.parameter_types(scope, name.lstrip("$"), query)
        if scope.type in CLOSURE_TYPES:
            return self._captured(name, scope, query)
        return EMPTY

    def _captured(self, name: str, closure: Any, query: DeductionQuery) -> TypeList:
        use_clause = first_child_of_type(closure, "anonymous_function_use_clause")
        if use_clause is None:
            return EMPTY
        for captured in use_clause.named_children:
            text = node_text(captured)
            if text.lstrip("&").strip() != name:
                continue
            if captured.type == "by_ref" or text.startswith("&"):
                statement = self._enclosing_statement(closure)
                return self.types_at(name, statement, statement.end_byte, query)
            return self.types_at(name, closure, closure.start_byte, query)
        return EMPTY

    @staticmethod
    def _enclosing_statement(node: Any) -> Any:
        current = node
        while current.parent is not None and current.parent.type not in (
            "compound_statement",
            "program",
        ):
            current = current.parent
        return current

    # =========================================================================
    # Inline @var overrides
    # =========================================================================

    def _var_override(
        self, name: str, scope: Any, position: int, query: DeductionQuery
    ) -> TypeList | None:
        container = query.document.root if scope is None else scope
        found: tuple[Any, str] | None = None
        for node in walk(container, skip=_OPAQUE_TYPES):
            if node.type != "comment" or node.end_byte > position:
                continue
            text = node_text(node)
            if not text.startswith("/**") or "@var" not in text:
                continue
            tag = self._engine.docblocks.parse(text).var_for(name)
            if tag is None:
                continue
            if tag.name is None and not self._next_assigns(node, name):
                continue
            if found is None or node.start_byte > found[0].start_byte:
                found = (node, tag.type)
        if found is None:
            return None
        comment, type_text = found
        context = query.document.context_at(start_line(comment))
        binding = self._engine.class_binding(comment, query.document)
        return TypeList(type_strings(self._engine.types.resolve_text(type_text, context, binding)))

    @staticmethod
    def _next_assigns(comment: Any, name: str) -> bool:
        statement = comment.next_named_sibling
        if statement is None:
            return False
        expression = statement
        if statement.type == "expression_statement" and statement.named_children:
            expression = statement.named_children[0]
        if expression.type not in _ASSIGNMENT_TYPES:
            return False
        return node_text(child_field(expression, "left")) == name

    # =========================================================================
    # Statements
    # =========================================================================

    def _statements(
        self,
        statements: list[Any],
        name: str,
        position: int,
        state: FlowState,
        query: DeductionQuery,
    ) -> FlowState:
        for statement in statements:
            if statement.start_byte >= position:
                break
            if statement.end_byte <= position:
                state = self._completed(statement, name, state, query)
            else:
                return self._within(statement, name, position, state, query)
        return state

    def _completed(
        self, node: Any, name: str, state: FlowState, query: DeductionQuery
    ) -> FlowState:
        if node.type in _OPAQUE_TYPES:
            return state
        events = self._events(node, name)
        if not events:
            return state
        return FlowState(types=self._evaluate(events[-1], query))

    def _within(
        self, node: Any, name: str, position: int, state: FlowState, query: DeductionQuery
    ) -> FlowState:
        kind = node.type
        if kind in _BLOCK_TYPES:
            return self._statements(named_children(node), name, position, state, query)
        if kind == "if_statement":
            return self._within_if(node, name, position, state, query)
        if kind == "while_statement":
            return self._within_loop(node, name, position, state, query)
        if kind == "foreach_statement":
            return self._within_foreach(node, name, position, state, query)
        if kind == "try_statement":
            return self._within_try(node, name, position, state, query)
        if kind == "expression_statement" or not _is_statement(kind):
            return self._within_expression(node, name, position, state, query)
        return self._within_generic(node, name, position, state, query)

    def _within_generic(
        self, node: Any, name: str, position: int, state: FlowState, query: DeductionQuery
    ) -> FlowState:
        for child in named_children(node):
            if child.end_byte <= position:
                state = self._completed(child, name, state, query)
            elif contains(child, position):
                return self._within(child, name, position, state, query)
            else:
                break
        return state

    def _within_if(
        self, node: Any, name: str, position: int, state: FlowState, query: DeductionQuery
    ) -> FlowState:
        condition = child_field(node, "condition")
        if condition is not None and contains(condition, position):
            return self._within_expression(condition, name, position, state, query)
        state = self._completed(condition, name, state, query) if condition is not None else state

        body = child_field(node, "body")
        if body is not None and contains(body, position):
            state = state.apply(self._narrowing(condition, name, query, positive=True))
            return self._within(body, name, position, state, query)

        negations: list[Narrowing | None] = [
            self._narrowing(condition, name, query, positive=False)
        ]
        for clause in children_of_type(node, "else_if_clause", "else_clause"):
            if not contains(clause, position):
                if clause.type == "else_if_clause":
                    clause_condition = child_field(clause, "condition")
                    negations.append(
                        self._narrowing(clause_condition, name, query, positive=False)
                    )
                continue
            clause_condition = child_field(clause, "condition")
            if clause_condition is not None and contains(clause_condition, position):
                for negation in negations:
                    state = state.apply(negation)
                return self._within_expression(clause_condition, name, position, state, query)
            if clause_condition is not None:
                state = self._completed(clause_condition, name, state, query)
            for negation in negations:
                state = state.apply(negation)
            if clause_condition is not None:
                state = state.apply(self._narrowing(clause_condition, name, query, positive=True))
            clause_body = child_field(clause, "body") or (
                named_children(clause)[-1] if named_children(clause) else None
            )
            if clause_body is None:
                return state
            return self._within(clause_body, name, position, state, query)
        return state

    def _within_loop(
        self, node: Any, name: str, position: int, state: FlowState, query: DeductionQuery
    ) -> FlowState:
        condition = child_field(node, "condition")
        if condition is not None and contains(condition, position):
            return self._within_expression(condition, name, position, state, query)
        if condition is not None:
            state = self._completed(condition, name, state, query)
        body = child_field(node, "body")
        if body is None or not contains(body, position):
            return state
        state = state.apply(self._narrowing(condition, name, query, positive=True))
        return self._within(body, name, position, state, query)

    def _within_foreach(
        self, node: Any, name: str, position: int, state: FlowState, query: DeductionQuery
    ) -> FlowState:
        parts = named_children(node)
        body = child_field(node, "body") or (parts[-1] if len(parts) > 2 else None)
        if body is None or not contains(body, position):
            return self._within_generic(node, name, position, state, query)
        header = [p for p in parts if p is not body]
        for part in header:
            state = self._completed(part, name, state, query)
        event = self._foreach_event(node, name)
        if event is not None:
            state = FlowState(types=self._evaluate(event, query))
        return self._within(body, name, position, state, query)

    def _within_try(
        self, node: Any, name: str, position: int, state: FlowState, query: DeductionQuery
    ) -> FlowState:
        for child in named_children(node):
            if not contains(child, position):
                continue
            if child.type == "catch_clause":
                variable = child_field(child, "name") or first_child_of_type(child, "variable_name")
                if variable is not None and node_text(variable) == name:
                    event = _Event(variable.end_byte, "catch", child)
                    state = FlowState(types=self._evaluate(event, query))
                body = child_field(child, "body") or first_child_of_type(
                    child, "compound_statement"
                )
                if body is not None and contains(body, position):
                    return self._within(body, name, position, state, query)
                return state
            return self._within(child, name, position, state, query)
        return state

    # =========================================================================
    # Expressions
    # =========================================================================

    def _within_expression(
        self, node: Any, name: str, position: int, state: FlowState, query: DeductionQuery
    ) -> FlowState:
        current = node
        while True:
            inner = None
            for child in current.named_children:
                if child.end_byte <= position:
                    state = self._completed(child, name, state, query)
                elif contains(child, position):
                    inner = child
                    break
                else:
                    break
            if inner is None or inner.type in _OPAQUE_TYPES:
                return state
            state = state.apply(self._branch_narrowing(current, inner, name, query))
            if inner.type in _BLOCK_TYPES or _is_statement(inner.type):
                return self._within(inner, name, position, state, query)
            current = inner

    def _branch_narrowing(
        self, parent: Any, child: Any, name: str, query: DeductionQuery
    ) -> Narrowing | None:
        if parent.type == "conditional_expression":
            condition = child_field(parent, "condition")
            if condition is None or _same(child, condition):
                return None
            body = child_field(parent, "body")
            positive = body is not None and _same(child, body)
            return self._narrowing(condition, name, query, positive=positive)
        if parent.type == "binary_expression":
            right = child_field(parent, "right")
            if right is None or not _same(child, right):
                return None
            operator = node_text(child_field(parent, "operator")).lower()
            if operator in ("&&", "and"):
                return self._narrowing(child_field(parent, "left"), name, query, positive=True)
            if operator in ("||", "or"):
                return self._narrowing(child_field(parent, "left"), name, query, positive=False)
        return None

    def _narrowing(
        self, condition: Any, name: str, query: DeductionQuery, *, positive: bool
    ) -> Narrowing | None:
        if condition is None:
            return None
        document = query.document
        when_true, when_false = analyze(
            condition, name, lambda node: self._engine.resolve_class_reference(node, document)
        )
        return when_true if positive else when_false

    # =========================================================================
    # Events
    # =========================================================================

    def _events(self, node: Any, name: str) -> list[_Event]:
        events: list[_Event] = []
        for current in walk(node, skip=_OPAQUE_TYPES):
            kind = current.type
            if kind in _ASSIGNMENT_TYPES:
                if node_text(child_field(current, "left")) == name:
                    events.append(_Event(current.end_byte, "assign", child_field(current, "right")))
            elif kind == "augmented_assignment_expression":
                if node_text(child_field(current, "left")) == name:
                    events.append(_Event(current.end_byte, "assign", current))
            elif kind == "foreach_statement":
                event = self._foreach_event(current, name)
                if event is not None:
                    events.append(event)
            elif kind == "catch_clause":
                variable = child_field(current, "name") or first_child_of_type(
                    current, "variable_name"
                )
                if variable is not None and node_text(variable) == name:
                    events.append(_Event(variable.end_byte, "catch", current))
            elif kind == "static_variable_declaration":
                variable = child_field(current, "name") or first_child_of_type(
                    current, "variable_name"
                )
                if variable is not None and node_text(variable) == name:
                    events.append(_Event(current.end_byte, "static", child_field(current, "value")))
        events.sort(key=lambda e: e.end)
        return events

    @staticmethod
    def _foreach_event(node: Any, name: str) -> _Event | None:
        parts = named_children(node)
        if len(parts) < 2:
            return None
        iterated, target = parts[0], parts[1]
        if target.type == "pair":
            pair_parts = named_children(target)
            if pair_parts and _variable_of(pair_parts[0]) == name:
                return _Event(target.end_byte, "unknown", None)
            target = pair_parts[-1] if pair_parts else target
        if _variable_of(target) == name:
            return _Event(target.end_byte, "foreach", iterated)
        return None

    def _evaluate(self, event: _Event, query: DeductionQuery) -> TypeList:
        if event.node is None or event.kind == "unknown":
            return EMPTY
        if event.kind in ("assign", "static"):
            return self._engine.deduce_within(event.node, query.in_place())
        if event.kind == "foreach":
            elements: list[str] = []
            for candidate in self._engine.deduce_within(event.node, query.in_place()):
                element = doctypes.element_type(candidate)
                if element is not None:
                    elements.extend(t.strip() for t in element.split("|"))
            return TypeList(elements)
        if event.kind == "catch":
            type_list = child_field(event.node, "type") or first_child_of_type(
                event.node, "type_list"
            )
            if type_list is None:
                return EMPTY
            names = [n for n in type_list.named_children] or [type_list]
            resolved = [self._engine.resolve_class_reference(n, query.document) for n in names]
            return TypeList(r for r in resolved if r)
        return EMPTY


def _same(a: Any, b: Any) -> bool:
    return bool(a.start_byte == b.start_byte and a.end_byte == b.end_byte and a.type == b.type)


def _variable_of(node: Any) -> str | None:
    if node.type == "variable_name":
        return node_text(node)
    if node.type == "by_ref":
        inner = first_child_of_type(node, "variable_name")
        return node_text(inner) if inner is not None else None
    return None


def _is_statement(kind: str) -> bool:
    return kind.endswith("_statement") or kind in ("else_clause", "else_if_clause", "catch_clause")
