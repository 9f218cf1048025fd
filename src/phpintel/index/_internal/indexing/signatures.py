"""Function-like signature extraction shared by indexing and deduction.

Parameter types come from, in order of preference:

1. the ``@param`` docblock tag,
2. the native type hint (plus ``null`` when the default is ``null``),
3. the type of the default value.

Variadic parameters are collections, so every type gets ``[]`` appended.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from phpintel.index._internal.docblock.parser import Docblock
from phpintel.index._internal.naming.context import NamespaceContext
from phpintel.index._internal.naming.types import (
    NO_BINDING,
    ClassBinding,
    TypeResolver,
    as_array_of,
    types_from_strings,
    with_null,
)
from phpintel.index._internal.parsing.nodes import (
    PARAMETER_TYPES,
    field as child_field,
    first_child_of_type,
    has_token,
    modifier_texts,
    node_text,
    parameter_name,
)
from phpintel.index.models import TypeInfo

DefaultDeducer = Callable[[Any], list[str]]


@dataclass
class ParameterInfo:
    name: str  # Without the '$' sigil
    types: list[TypeInfo] = field(default_factory=list)
    default_value: str | None = None
    description: str | None = None
    is_nullable: bool = False
    is_reference: bool = False
    is_variadic: bool = False
    is_promoted: bool = False
    visibility: str | None = None  # Promoted constructor parameters only
    is_readonly: bool = False
    hint_node: Any = None
    node: Any = None


def _is_null_literal(node: Any) -> bool:
    return node is not None and (node.type == "null" or node_text(node).lower() == "null")


class SignatureExtractor:
    """Builds ``ParameterInfo`` lists and return types from function-like nodes."""

    def __init__(self, types: TypeResolver) -> None:
        self._types = types

    def parameters(
        self,
        function_node: Any,
        docblock: Docblock,
        context: NamespaceContext,
        binding: ClassBinding = NO_BINDING,
        deduce_default: DefaultDeducer | None = None,
    ) -> list[ParameterInfo]:
        params_node = child_field(function_node, "parameters") or first_child_of_type(
            function_node, "formal_parameters"
        )
        if params_node is None:
            return []

        result: list[ParameterInfo] = []
        for param in params_node.named_children:
            if param.type not in PARAMETER_TYPES:
                continue
            result.append(self._parameter(param, docblock, context, binding, deduce_default))
        return result

    def _parameter(
        self,
        param: Any,
        docblock: Docblock,
        context: NamespaceContext,
        binding: ClassBinding,
        deduce_default: DefaultDeducer | None,
    ) -> ParameterInfo:
        name = parameter_name(param)
        hint = child_field(param, "type")
        default = child_field(param, "default_value")
        is_variadic = param.type == "variadic_parameter" or has_token(param, "...")
        is_reference = (
            child_field(param, "reference_modifier") is not None
            or has_token(param, "reference_modifier", "&")
        )
        info = ParameterInfo(
            name=name,
            default_value=node_text(default) if default is not None else None,
            is_variadic=is_variadic,
            is_reference=is_reference,
            hint_node=hint,
            node=param,
        )

        if param.type == "property_promotion_parameter":
            info.is_promoted = True
            modifiers = modifier_texts(param)
            visibility = child_field(param, "visibility")
            info.visibility = (
                node_text(visibility).lower()
                if visibility is not None
                else next(
                    (m for m in modifiers if m in ("public", "protected", "private")), "public"
                )
            )
            info.is_readonly = "readonly" in modifiers

        tag = docblock.params.get(f"${name}")
        if tag is not None:
            info.description = tag.description

        hint_types = self._types.resolve_hint(hint, context, binding)
        hint_nullable = any(t.fqcn == "null" for t in hint_types)
        info.is_nullable = hint_nullable or _is_null_literal(default)

        if tag is not None and tag.type:
            types = self._types.resolve_text(tag.type, context, binding)
        elif hint_types:
            types = with_null(hint_types) if _is_null_literal(default) else hint_types
        elif default is not None and deduce_default is not None:
            types = types_from_strings(deduce_default(default))
        else:
            types = []

        info.types = as_array_of(types) if is_variadic else types
        return info

    def return_types(
        self,
        function_node: Any,
        docblock: Docblock,
        context: NamespaceContext,
        binding: ClassBinding = NO_BINDING,
    ) -> list[TypeInfo]:
        """``@return`` types, else the native return type hint.

        Constructors have no return type.
        """
        if node_text(child_field(function_node, "name")).lower() == "__construct":
            return []
        if docblock.return_tag is not None:
            return self._types.resolve_text(docblock.return_tag.type, context, binding)
        return self._types.resolve_hint(child_field(function_node, "return_type"), context, binding)
