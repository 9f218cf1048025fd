"""Shortest local spelling of a fully qualified name."""

from __future__ import annotations

from phpintel.index._internal.naming.context import NamespaceContext
from phpintel.index._internal.naming.resolver import NameResolver, is_fully_qualified
from phpintel.index.models import ImportKind


class NameLocalizer:
    """Inverse of ``NameResolver``: renders an FQSEN the way code at a given
    point would write it.

    Candidates are tried shortest first and only accepted if they resolve
    back to the same name; the fully qualified form is the fallback.
    """

    def __init__(self, names: NameResolver) -> None:
        self._names = names

    def localize(
        self,
        fqsen: str,
        context: NamespaceContext,
        kind: ImportKind = ImportKind.CLASSLIKE,
    ) -> str:
        if not is_fully_qualified(fqsen):
            return fqsen

        candidates = sorted(set(self._candidates(fqsen, context, kind)), key=len)
        for candidate in candidates:
            resolved = self._names.resolve(candidate, context, kind)
            if resolved.lower() == fqsen.lower():
                return candidate
        return fqsen

    def localize_type(self, type_string: str, context: NamespaceContext) -> str:
        """Localize a resolved type string such as ``\\A\\B[]`` or ``int``."""
        suffix = ""
        base = type_string
        while base.endswith("[]"):
            base = base[:-2]
            suffix += "[]"
        return self.localize(base, context) + suffix

    @staticmethod
    def _candidates(fqsen: str, context: NamespaceContext, kind: ImportKind) -> list[str]:
        lowered = fqsen.lower()
        candidates: list[str] = []

        for imp in context.imports:
            target = imp.name.lower()
            if imp.kind == kind and target == lowered:
                candidates.append(imp.alias)
            elif imp.kind == ImportKind.CLASSLIKE and lowered.startswith(target + "\\"):
                candidates.append(imp.alias + fqsen[len(imp.name) :])

        prefix = f"\\{context.namespace}\\".lower() if context.namespace else "\\"
        if lowered.startswith(prefix):
            candidates.append(fqsen[len(prefix) :])
        return candidates
