"""Namespace and import context used to qualify names."""

from __future__ import annotations

from dataclasses import dataclass, field

from phpintel.index.models import ImportKind


@dataclass(frozen=True, slots=True)
class ImportAlias:
    alias: str
    name: str  # Fully qualified, with leading backslash
    kind: ImportKind
    line: int = 0


@dataclass
class NamespaceContext:
    """Active namespace and imports at one point of a file.

    ``namespace`` has no leading backslash and is empty for the global
    namespace.
    """

    namespace: str = ""
    imports: list[ImportAlias] = field(default_factory=list)

    def find_import(self, alias: str, kind: ImportKind) -> ImportAlias | None:
        """Latest import of ``kind`` under ``alias``.

        Classlike and function aliases are case-insensitive, constants are not.
        """
        found: ImportAlias | None = None
        for imp in self.imports:
            if imp.kind != kind:
                continue
            if kind == ImportKind.CONSTANT:
                matches = imp.alias == alias
            else:
                matches = imp.alias.lower() == alias.lower()
            if matches:
                found = imp
        return found

    def prefixed(self, name: str) -> str:
        """``name`` qualified with the current namespace."""
        if self.namespace:
            return f"\\{self.namespace}\\{name}"
        return f"\\{name}"


@dataclass
class NamespaceScope:
    """A namespace's line range within a file, with every import declared in it."""

    name: str
    start_line: int
    end_line: int
    imports: list[ImportAlias] = field(default_factory=list)

    def covers(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    def context_at(self, line: int) -> NamespaceContext:
        """Context at ``line``: only imports declared on or before it apply."""
        return NamespaceContext(
            namespace=self.name,
            imports=[imp for imp in self.imports if imp.line <= line],
        )


def context_for_line(scopes: list[NamespaceScope], line: int) -> NamespaceContext:
    """Pick the innermost scope covering ``line``; the global context otherwise."""
    chosen: NamespaceScope | None = None
    for scope in scopes:
        if scope.covers(line):
            if chosen is None or scope.start_line >= chosen.start_line:
                chosen = scope
    if chosen is None:
        return NamespaceContext()
    return chosen.context_at(line)
