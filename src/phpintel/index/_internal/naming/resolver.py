"""Qualification of names against a namespace context.

Rules, in order:

1. Fully qualified names (leading ``\\``) are returned verbatim.
2. Qualified names (``A\\B``): a classlike import aliasing the first segment
   replaces it, otherwise the current namespace is prepended.
   ``namespace\\X`` always means the current namespace.
3. Unqualified names:
   - classlikes: a classlike import wins, else the current namespace is
     prepended. The index is never consulted.
   - functions and constants: an import of the same kind wins, else the
     namespaced name is used if it is indexed, else the global one.
"""

from __future__ import annotations

from typing import Protocol

from phpintel.config.constants import KEYWORD_TYPES, SPECIAL_CLASS_NAMES
from phpintel.core.errors import MissingContextError
from phpintel.index._internal.naming.context import NamespaceContext
from phpintel.index.models import ImportKind


class SymbolExistenceOracle(Protocol):
    def function_exists(self, fqsen: str) -> bool: ...

    def constant_exists(self, fqsen: str) -> bool: ...


def is_fully_qualified(name: str) -> bool:
    return name.startswith("\\")


def is_qualified(name: str) -> bool:
    return "\\" in name.lstrip("\\")


def short_name(fqsen: str) -> str:
    return fqsen.rsplit("\\", 1)[-1]


def namespace_of(fqsen: str) -> str:
    """``\\A\\B\\C`` -> ``A\\B``."""
    stripped = fqsen.lstrip("\\")
    if "\\" not in stripped:
        return ""
    return stripped.rsplit("\\", 1)[0]


class NameResolver:
    """Turns names as written into fully qualified structural element names."""

    def __init__(self, oracle: SymbolExistenceOracle | None = None) -> None:
        self._oracle = oracle

    def resolve(
        self,
        name: str,
        context: NamespaceContext | None,
        kind: ImportKind = ImportKind.CLASSLIKE,
    ) -> str:
        """Resolve ``name`` to a fully qualified name.

        Args:
            name: Name as written in source.
            context: Namespace and imports in effect where the name appears.
            kind: What the name refers to.

        Returns:
            The fully qualified name, with a leading backslash.

        Raises:
            MissingContextError: If ``context`` is None.
        """
        if context is None:
            raise MissingContextError.for_name(name)

        name = name.strip()
        if is_fully_qualified(name):
            return name

        if kind == ImportKind.CLASSLIKE and name.lower() in (SPECIAL_CLASS_NAMES | KEYWORD_TYPES):
            return name.lower()

        if name.lower().startswith("namespace\\"):
            return context.prefixed(name[len("namespace\\") :])

        if is_qualified(name):
            first, rest = name.split("\\", 1)
            imported = context.find_import(first, ImportKind.CLASSLIKE)
            if imported is not None:
                return f"{imported.name}\\{rest}"
            return context.prefixed(name)

        imported = context.find_import(name, kind)
        if imported is not None:
            return imported.name

        if kind == ImportKind.CLASSLIKE:
            return context.prefixed(name)

        if not context.namespace:
            return f"\\{name}"

        candidate = context.prefixed(name)
        if self._exists(candidate, kind):
            return candidate
        return f"\\{name}"

    def _exists(self, fqsen: str, kind: ImportKind) -> bool:
        if self._oracle is None:
            return False
        if kind == ImportKind.FUNCTION:
            return self._oracle.function_exists(fqsen)
        return self._oracle.constant_exists(fqsen)
