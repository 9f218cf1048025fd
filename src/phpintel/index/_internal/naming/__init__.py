"""Name qualification, localization and type resolution."""

from phpintel.index._internal.naming.context import (
    ImportAlias,
    NamespaceContext,
    NamespaceScope,
    context_for_line,
)
from phpintel.index._internal.naming.localizer import NameLocalizer
from phpintel.index._internal.naming.resolver import NameResolver, SymbolExistenceOracle
from phpintel.index._internal.naming.scopes import collect_namespace_scopes
from phpintel.index._internal.naming.types import ClassBinding, TypeResolver

__all__ = [
    "ClassBinding",
    "ImportAlias",
    "NameLocalizer",
    "NameResolver",
    "NamespaceContext",
    "NamespaceScope",
    "SymbolExistenceOracle",
    "TypeResolver",
    "collect_namespace_scopes",
    "context_for_line",
]
