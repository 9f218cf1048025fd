"""Type deduction for PHP expressions.

``TypeDeductionEngine.deduce`` maps an expression node to the fully
qualified types it may evaluate to. Dispatch is a table keyed by node type;
node types without an entry deduce to no information. Deduction never fails
on a sub-lookup: unknown classlikes, functions and constants contribute
nothing.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from phpintel.config.constants import CLOSURE_FQCN
from phpintel.config.models import AnalysisConfig
from phpintel.core.errors import ResolutionError, UnsupportedNodeError
from phpintel.index._internal.db.storage import IndexStorage
from phpintel.index._internal.deduction.document import TextDocument
from phpintel.index._internal.deduction.flow import VariableFlow
from phpintel.index._internal.deduction.typelist import EMPTY, TypeList
from phpintel.index._internal.docblock import types as doctypes
from phpintel.index._internal.docblock.parser import DocblockParser
from phpintel.index._internal.indexing.signatures import SignatureExtractor
from phpintel.index._internal.naming.resolver import NameResolver
from phpintel.index._internal.naming.types import (
    NO_BINDING,
    ClassBinding,
    TypeResolver,
    type_strings,
)
from phpintel.index._internal.parsing.nodes import (
    CLASSLIKE_TYPES,
    CLOSURE_TYPES,
    NAME_TYPES,
    docblock_for,
    enclosing,
    first_child_of_type,
    named_children,
    node_text,
)
from phpintel.index._internal.parsing.nodes import field as child_field
from phpintel.index._internal.resolution.classlike import ClasslikeResolver
from phpintel.index._internal.resolution.models import FlattenedClasslike, ResolvedMember
from phpintel.index.models import ImportKind

logger = structlog.get_logger()

_COMPARISON_OPERATORS = frozenset(
    {"==", "===", "!=", "!==", "<>", "<", ">", "<=", ">=", "instanceof"}
)
_LOGICAL_OPERATORS = frozenset({"&&", "||", "and", "or", "xor"})
_BITWISE_OPERATORS = frozenset({"&", "|", "^", "<<", ">>"})
_ARITHMETIC_OPERATORS = frozenset({"+", "-", "*", "/", "%", "**"})

_CAST_TYPES = {
    "int": "int",
    "integer": "int",
    "bool": "bool",
    "boolean": "bool",
    "float": "float",
    "double": "float",
    "real": "float",
    "string": "string",
    "binary": "string",
    "array": "array",
    "object": "\\stdClass",
    "unset": "null",
}

_STRING_TYPES = frozenset(
    {"string", "encapsed_string", "heredoc", "nowdoc", "shell_command_expression"}
)

_SELF_REFERENCES = frozenset({"self", "static"})
_LATE_BOUND = frozenset({"static", "$this"})

_CLASSLIKE_OR_ANONYMOUS = CLASSLIKE_TYPES | {"anonymous_class"}


def _is_statement_node(kind: str) -> bool:
    return kind == "program" or kind.endswith(
        ("_statement", "_declaration", "_definition", "_clause", "declaration_list")
    )


def _bind_late_static(type_string: str, accessed: str) -> str:
    """Replace ``static``/``$this`` (also as ``static[]``) with ``accessed``."""
    base = type_string
    suffix = ""
    while base.endswith("[]"):
        base = base[:-2]
        suffix += "[]"
    if base.lower() in _LATE_BOUND:
        return accessed + suffix
    return type_string


@dataclass(frozen=True)
class DeductionQuery:
    """One top-level ``deduce`` call.

    ``position`` is the byte offset variables inside the queried expression are
    read at; None reads each variable where it appears.
    """

    document: TextDocument
    depth: int = 0
    position: int | None = None

    def deeper(self) -> DeductionQuery:
        return DeductionQuery(
            document=self.document, depth=self.depth + 1, position=self.position
        )

    def in_place(self) -> DeductionQuery:
        """Same query for an expression read where it appears in the source."""
        return DeductionQuery(document=self.document, depth=self.depth)


class TypeDeductionEngine:
    """Deduces expression types against a document and the index.

    Usage::

        engine = TypeDeductionEngine(storage, names, classlikes)
        doc = TextDocument("src/a.php", source)
        engine.deduce_at(doc, doc.offset_of("$foo", 2))
    """

    def __init__(
        self,
        storage: IndexStorage,
        names: NameResolver,
        classlikes: ClasslikeResolver,
        docblocks: DocblockParser | None = None,
        config: AnalysisConfig | None = None,
    ) -> None:
        self._storage = storage
        self._names = names
        self._classlikes = classlikes
        self.types = TypeResolver(names)
        self.docblocks = docblocks or DocblockParser()
        self._signatures = SignatureExtractor(self.types)
        self._max_depth = (config or AnalysisConfig()).max_deduction_depth
        self._flow = VariableFlow(self)
        self._dispatch: dict[str, Callable[[Any, DeductionQuery], TypeList]] = {
            "integer": lambda n, q: TypeList(["int"]),
            "float": lambda n, q: TypeList(["float"]),
            "boolean": lambda n, q: TypeList(["bool"]),
            "null": lambda n, q: TypeList(["null"]),
            "array_creation_expression": lambda n, q: TypeList(["array"]),
            "list_literal": lambda n, q: TypeList(["array"]),
            "print_intrinsic": lambda n, q: TypeList(["int"]),
            "anonymous_function": lambda n, q: TypeList([CLOSURE_FQCN]),
            "anonymous_function_creation_expression": lambda n, q: TypeList([CLOSURE_FQCN]),
            "arrow_function": lambda n, q: TypeList([CLOSURE_FQCN]),
            "parenthesized_expression": self._inner,
            "error_suppression_expression": self._inner,
            "clone_expression": self._inner,
            "update_expression": self._inner,
            "sequence_expression": self._last,
            "assignment_expression": self._assignment,
            "reference_assignment_expression": self._assignment,
            "augmented_assignment_expression": self._augmented_assignment,
            "cast_expression": self._cast,
            "unary_op_expression": self._unary,
            "binary_expression": self._binary,
            "conditional_expression": self._conditional,
            "match_expression": self._match,
            "object_creation_expression": self._object_creation,
            "variable_name": self._variable,
            "name": self._constant_fetch,
            "qualified_name": self._constant_fetch,
            "relative_name": self._constant_fetch,
            "function_call_expression": self._function_call,
            "member_access_expression": self._property_fetch,
            "nullsafe_member_access_expression": self._property_fetch,
            "member_call_expression": self._method_call,
            "nullsafe_member_call_expression": self._method_call,
            "scoped_call_expression": self._static_call,
            "scoped_property_access_expression": self._static_property,
            "class_constant_access_expression": self._class_constant,
            "subscript_expression": self._subscript,
        }
        for string_type in _STRING_TYPES:
            self._dispatch[string_type] = lambda n, q: TypeList(["string"])

    # =========================================================================
    # Public API
    # =========================================================================

    def deduce(
        self, node: Any, document: TextDocument, position: int | None = None
    ) -> TypeList:
        """Deduce the types ``node`` may evaluate to at ``position``.

        ``position`` defaults to the start of ``node``.

        Raises:
            UnsupportedNodeError: If ``node`` is a statement or declaration.
        """
        if _is_statement_node(node.type):
            raise UnsupportedNodeError.for_node(node.type, "an expression")
        return self.deduce_within(node, DeductionQuery(document=document, position=position))

    def deduce_at(self, document: TextDocument, offset: int) -> TypeList:
        """Deduce the expression at a byte offset of ``document``."""
        return self.deduce(self.expression_at(document, offset), document)

    @staticmethod
    def expression_at(document: TextDocument, offset: int) -> Any:
        """Widen the node at ``offset`` to the expression it names."""
        node = document.node_at(offset)
        while node is not None and node.parent is not None:
            parent = node.parent
            if parent.type in ("variable_name", "qualified_name", "named_type"):
                node = parent
                continue
            name = child_field(parent, "name")
            if name is not None and name.start_byte == node.start_byte and name.type == node.type:
                if not _is_statement_node(parent.type) and parent.type not in CLOSURE_TYPES:
                    node = parent
                    continue
            if parent.type == "function_call_expression" and _same_node(
                child_field(parent, "function"), node
            ):
                node = parent
                continue
            if parent.type == "class_constant_access_expression" and _same_node(
                named_children(parent)[-1], node
            ):
                node = parent
                continue
            break
        return node

    def deduce_within(self, node: Any, query: DeductionQuery) -> TypeList:
        """Deduce ``node`` one level below ``query``."""
        if node is None:
            return EMPTY
        if query.depth >= self._max_depth:
            logger.debug("deduction_depth_exceeded", node_type=node.type, depth=query.depth)
            return EMPTY
        handler = self._dispatch.get(node.type)
        if handler is None:
            return EMPTY
        try:
            return handler(node, query.deeper())
        except ResolutionError as e:
            logger.debug("deduction_lookup_failed", node_type=node.type, error=e.message)
            return EMPTY

    # =========================================================================
    # Helpers shared with flow analysis
    # =========================================================================

    def class_binding(self, node: Any, document: TextDocument) -> ClassBinding:
        """``self``/``parent`` of the classlike enclosing ``node``."""
        classlike = enclosing(node, _CLASSLIKE_OR_ANONYMOUS)
        if classlike is None or classlike.type == "anonymous_class":
            return NO_BINDING
        context = document.context_for(classlike)
        fqcn = context.prefixed(node_text(child_field(classlike, "name")))
        parent: str | None = None
        base_clause = first_child_of_type(classlike, "base_clause")
        if base_clause is not None and classlike.type == "class_declaration":
            parent_name = next(
                (c for c in base_clause.named_children if c.type in NAME_TYPES), None
            )
            if parent_name is not None:
                parent = self._names.resolve(node_text(parent_name), context, ImportKind.CLASSLIKE)
        return ClassBinding(self_fqcn=fqcn, parent_fqcn=parent)

    def resolve_class_reference(self, node: Any, document: TextDocument) -> str | None:
        """FQCN named by a class reference node (``Foo``, ``self``, ``parent``...)."""
        if node is None:
            return None
        if node.type not in NAME_TYPES and node.type not in ("named_type", "relative_scope"):
            return None
        text = node_text(node).strip()
        lower = text.lower()
        if lower in _SELF_REFERENCES or lower == "parent":
            binding = self.class_binding(node, document)
            return binding.parent_fqcn if lower == "parent" else binding.self_fqcn
        return self._names.resolve(text, document.context_for(node), ImportKind.CLASSLIKE)

    def parameter_types(self, function_node: Any, name: str, query: DeductionQuery) -> TypeList:
        """Types of parameter ``name`` (without ``$``) of a function-like node."""
        document = query.document
        docblock = self.docblocks.parse(docblock_for(function_node))
        params = self._signatures.parameters(
            function_node,
            docblock,
            document.context_for(function_node),
            self.class_binding(function_node, document),
            lambda default: self.deduce_within(default, query).to_list(),
        )
        for param in params:
            if param.name == name:
                return TypeList(type_strings(param.types))
        return EMPTY

    # =========================================================================
    # Simple expressions
    # =========================================================================

    def _inner(self, node: Any, query: DeductionQuery) -> TypeList:
        children = named_children(node)
        return self.deduce_within(children[-1], query) if children else EMPTY

    def _last(self, node: Any, query: DeductionQuery) -> TypeList:
        return self._inner(node, query)

    def _assignment(self, node: Any, query: DeductionQuery) -> TypeList:
        return self.deduce_within(child_field(node, "right"), query)

    def _augmented_assignment(self, node: Any, query: DeductionQuery) -> TypeList:
        operator = node_text(child_field(node, "operator")).strip()
        left = child_field(node, "left")
        right = child_field(node, "right")
        if operator == ".=":
            return TypeList(["string"])
        if operator == "??=":
            return self.deduce_within(left, query).without_null().union(
                self.deduce_within(right, query)
            )
        return self._operation(operator[:-1], left, right, query)

    def _cast(self, node: Any, query: DeductionQuery) -> TypeList:
        cast_type = child_field(node, "type") or first_child_of_type(node, "cast_type")
        target = _CAST_TYPES.get(node_text(cast_type).strip("() \t").lower())
        return TypeList([target]) if target else EMPTY

    def _unary(self, node: Any, query: DeductionQuery) -> TypeList:
        operand = named_children(node)
        operator = ""
        for child in node.children:
            if not child.is_named:
                operator = node_text(child)
                break
        if operator == "!":
            return TypeList(["bool"])
        if operator == "~":
            return TypeList(["int"])
        return self.deduce_within(operand[-1], query) if operand else EMPTY

    def _binary(self, node: Any, query: DeductionQuery) -> TypeList:
        operator = node_text(child_field(node, "operator")).strip().lower()
        left = child_field(node, "left")
        right = child_field(node, "right")
        if operator in _COMPARISON_OPERATORS or operator in _LOGICAL_OPERATORS:
            return TypeList(["bool"])
        if operator == "<=>":
            return TypeList(["int"])
        if operator == "??":
            return self.deduce_within(left, query).without_null().union(
                self.deduce_within(right, query)
            )
        return self._operation(operator, left, right, query)

    def _operation(self, operator: str, left: Any, right: Any, query: DeductionQuery) -> TypeList:
        if operator == ".":
            return TypeList(["string"])
        if operator in _BITWISE_OPERATORS or operator == "%":
            return TypeList(["int"])
        if operator not in _ARITHMETIC_OPERATORS:
            return EMPTY
        left_types = self.deduce_within(left, query)
        right_types = self.deduce_within(right, query)
        if operator == "+" and "array" in left_types and "array" in right_types:
            return TypeList(["array"])
        if "float" in left_types or "float" in right_types:
            return TypeList(["float"])
        if operator == "/":
            return TypeList(["int", "float"])
        if left_types == ["int"] and right_types == ["int"]:
            return TypeList(["int"])
        return TypeList(["int", "float"])

    def _conditional(self, node: Any, query: DeductionQuery) -> TypeList:
        condition = child_field(node, "condition")
        body = child_field(node, "body")
        alternative = child_field(node, "alternative")
        if body is None:
            head = self.deduce_within(condition, query).without_null()
        else:
            head = self.deduce_within(body, query)
        return head.union(self.deduce_within(alternative, query))

    def _match(self, node: Any, query: DeductionQuery) -> TypeList:
        result = EMPTY
        block = child_field(node, "body") or first_child_of_type(node, "match_block")
        if block is None:
            return result
        for arm in named_children(block):
            value = child_field(arm, "return_expression")
            if value is None and named_children(arm):
                value = named_children(arm)[-1]
            result = result.union(self.deduce_within(value, query))
        return result

    def _object_creation(self, node: Any, query: DeductionQuery) -> TypeList:
        for child in named_children(node):
            if child.type in NAME_TYPES or child.type == "relative_scope":
                fqcn = self.resolve_class_reference(child, query.document)
                return TypeList([fqcn]) if fqcn else EMPTY
            if child.type != "attribute_list":
                # Anonymous classes, new $class, new (expr)
                return EMPTY
        return EMPTY

    # =========================================================================
    # Variables, constants and functions
    # =========================================================================

    def _variable(self, node: Any, query: DeductionQuery) -> TypeList:
        name = node_text(node)
        if name == "$this":
            binding = self.class_binding(node, query.document)
            return TypeList([binding.self_fqcn]) if binding.self_fqcn else EMPTY
        position = node.start_byte if query.position is None else query.position
        return self._flow.types_at(name, node, position, query)

    def _constant_fetch(self, node: Any, query: DeductionQuery) -> TypeList:
        text = node_text(node).strip()
        lower = text.lstrip("\\").lower()
        if lower in ("true", "false"):
            return TypeList(["bool"])
        if lower == "null":
            return TypeList(["null"])
        fqsen = self._names.resolve(text, query.document.context_for(node), ImportKind.CONSTANT)
        row = self._storage.find_constant(fqsen)
        return TypeList(type_strings(row.types)) if row is not None else EMPTY

    def _function_call(self, node: Any, query: DeductionQuery) -> TypeList:
        function = child_field(node, "function")
        if function is None or function.type not in NAME_TYPES:
            return EMPTY
        fqsen = self._names.resolve(
            node_text(function), query.document.context_for(node), ImportKind.FUNCTION
        )
        row = self._storage.find_function(fqsen)
        return TypeList(type_strings(row.return_types)) if row is not None else EMPTY

    # =========================================================================
    # Members
    # =========================================================================

    def _classlikes_of(self, types: TypeList) -> list[tuple[str, FlattenedClasslike]]:
        result: list[tuple[str, FlattenedClasslike]] = []
        for candidate in types:
            if not doctypes.is_class_type(candidate):
                continue
            try:
                result.append((candidate, self._classlikes.resolve(candidate)))
            except ResolutionError as e:
                logger.debug("member_owner_unresolved", fqcn=candidate, error=e.message)
        return result

    @staticmethod
    def _member_types(member: ResolvedMember | None, accessed: str) -> list[str]:
        if member is None:
            return []
        return [_bind_late_static(t.fqcn, accessed) for t in member.types]

    def _property_fetch(self, node: Any, query: DeductionQuery) -> TypeList:
        owner_types = self.deduce_within(child_field(node, "object"), query)
        name = child_field(node, "name")
        if name is None or name.type != "name":
            return EMPTY
        result = TypeList()
        for fqcn, flat in self._classlikes_of(owner_types):
            result = result.union(self._member_types(flat.get_property(node_text(name)), fqcn))
        if node.type.startswith("nullsafe") and "null" in owner_types:
            result = result.union(["null"])
        return result

    def _method_call(self, node: Any, query: DeductionQuery) -> TypeList:
        owner_types = self.deduce_within(child_field(node, "object"), query)
        name = child_field(node, "name")
        if name is None or name.type != "name":
            return EMPTY
        result = TypeList()
        for fqcn, flat in self._classlikes_of(owner_types):
            result = result.union(self._member_types(flat.get_method(node_text(name)), fqcn))
        if node.type.startswith("nullsafe") and "null" in owner_types:
            result = result.union(["null"])
        return result

    def _scope_types(self, scope: Any, query: DeductionQuery) -> tuple[TypeList, str | None]:
        """Classlikes a ``X::`` scope refers to, and what ``static`` binds to."""
        if scope is None:
            return EMPTY, None
        if scope.type in NAME_TYPES or scope.type == "relative_scope":
            text = node_text(scope).lower()
            binding = self.class_binding(scope, query.document)
            if text in _SELF_REFERENCES:
                fqcn = binding.self_fqcn
            elif text == "parent":
                fqcn = binding.parent_fqcn
            else:
                return TypeList([self.resolve_class_reference(scope, query.document) or ""]), None
            return (TypeList([fqcn]) if fqcn else EMPTY), binding.self_fqcn
        return self.deduce_within(scope, query), None

    def _static_call(self, node: Any, query: DeductionQuery) -> TypeList:
        owners, late_bound = self._scope_types(child_field(node, "scope"), query)
        name = child_field(node, "name")
        if name is None or name.type != "name":
            return EMPTY
        result = TypeList()
        for fqcn, flat in self._classlikes_of(owners):
            method = flat.get_method(node_text(name))
            result = result.union(self._member_types(method, late_bound or fqcn))
        return result

    def _static_property(self, node: Any, query: DeductionQuery) -> TypeList:
        owners, late_bound = self._scope_types(child_field(node, "scope"), query)
        name = child_field(node, "name")
        if name is None:
            return EMPTY
        result = TypeList()
        for fqcn, flat in self._classlikes_of(owners):
            prop = flat.get_property(node_text(name).lstrip("$"))
            result = result.union(self._member_types(prop, late_bound or fqcn))
        return result

    def _class_constant(self, node: Any, query: DeductionQuery) -> TypeList:
        parts = named_children(node)
        if len(parts) < 2:
            return EMPTY
        constant = node_text(parts[-1])
        if constant.lower() == "class":
            return TypeList(["string"])
        owners, late_bound = self._scope_types(parts[0], query)
        result = TypeList()
        for fqcn, flat in self._classlikes_of(owners):
            result = result.union(
                self._member_types(flat.get_constant(constant), late_bound or fqcn)
            )
        return result

    def _subscript(self, node: Any, query: DeductionQuery) -> TypeList:
        parts = named_children(node)
        if not parts:
            return EMPTY
        elements: list[str] = []
        for candidate in self.deduce_within(parts[0], query):
            if candidate == "string":
                elements.append("string")
                continue
            element = doctypes.element_type(candidate)
            if element is not None:
                elements.extend(t.strip() for t in element.split("|"))
        return TypeList(elements)


def _same_node(a: Any, b: Any) -> bool:
    return a is not None and a.start_byte == b.start_byte and a.end_byte == b.end_byte

