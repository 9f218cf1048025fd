"""In-memory PHP document that deduction queries run against."""

from __future__ import annotations

from functools import cached_property
from typing import Any

from phpintel.index._internal.naming.context import (
    NamespaceContext,
    NamespaceScope,
    context_for_line,
)
from phpintel.index._internal.naming.scopes import collect_namespace_scopes
from phpintel.index._internal.parsing.treesitter import ParseResult, PhpParser


class TextDocument:
    """Source text of one file with its lazily built syntax tree.

    Offsets are byte offsets into the UTF-8 encoded source, the unit
    tree-sitter uses for ``start_byte``/``end_byte``.
    """

    def __init__(
        self,
        path: str,
        source: str | bytes,
        parse_result: ParseResult | None = None,
        parser: PhpParser | None = None,
    ) -> None:
        self.path = path
        self.source = source.encode("utf-8") if isinstance(source, str) else source
        self._parse_result = parse_result
        self._parser = parser

    @property
    def parse_result(self) -> ParseResult:
        if self._parse_result is None:
            self._parse_result = (self._parser or PhpParser()).parse(self.source)
        return self._parse_result

    @property
    def root(self) -> Any:
        return self.parse_result.root_node

    @cached_property
    def namespace_scopes(self) -> list[NamespaceScope]:
        return collect_namespace_scopes(self.root)

    def context_at(self, line: int) -> NamespaceContext:
        """Namespace context in effect at a 1-based line."""
        return context_for_line(self.namespace_scopes, line)

    def context_for(self, node: Any) -> NamespaceContext:
        return self.context_at(int(node.start_point[0]) + 1)

    def offset_at(self, line: int, column: int) -> int:
        """Byte offset of a 1-based line and 0-based byte column."""
        current = 1
        offset = 0
        while current < line:
            newline = self.source.find(b"\n", offset)
            if newline < 0:
                return len(self.source)
            offset = newline + 1
            current += 1
        return min(offset + column, len(self.source))

    def offset_of(self, needle: str, occurrence: int = 1) -> int:
        """Byte offset of the n-th occurrence of ``needle``; -1 when absent."""
        encoded = needle.encode("utf-8")
        offset = -1
        for _ in range(occurrence):
            offset = self.source.find(encoded, offset + 1)
            if offset < 0:
                return -1
        return offset

    def node_at(self, offset: int) -> Any:
        """Smallest named node covering ``offset``."""
        return self.root.named_descendant_for_byte_range(offset, offset)
