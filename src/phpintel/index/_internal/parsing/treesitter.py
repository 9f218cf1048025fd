"""Tree-sitter parsing for PHP sources.

This module wraps the ``tree-sitter-php`` grammar and turns the error and
missing nodes of a tree into ``ParseDiagnostic`` values. A tree with syntax
errors is still usable: indexing and deduction walk whatever the grammar
managed to recover. Only sources that cannot be decoded, or whose every
top-level statement ended up inside an error node, are reported as fatal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog
import tree_sitter
import tree_sitter_php

from phpintel.core.errors import IndexingFailedError, ParseDiagnostic

logger = structlog.get_logger()

# Top-level nodes that carry no declarations or statements.
_TRIVIA_TYPES = frozenset({"php_tag", "text", "text_interpolation", "comment", "?>"})

_SNIPPET_LENGTH = 20


@dataclass
class ParseResult:
    """Result of parsing a PHP source."""

    tree: Any  # Tree-sitter Tree (not serializable)
    root_node: Any  # Tree-sitter Node
    source: bytes
    diagnostics: list[ParseDiagnostic] = field(default_factory=list)
    error_count: int = 0
    total_nodes: int = 0

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    @property
    def is_fatal(self) -> bool:
        """True when nothing meaningful survived outside error nodes."""
        root = self.root_node
        if root.type == "ERROR":
            return True
        if not self.has_errors:
            return False
        statements = [c for c in root.named_children if c.type not in _TRIVIA_TYPES]
        return bool(statements) and all(c.type == "ERROR" for c in statements)


@dataclass
class PhpParser:
    """
    Tree-sitter parser for PHP.

    Usage::

        parser = PhpParser()
        result = parser.parse("<?php class Foo {}")
        if result.diagnostics:
            ...
    """

    _parser: Any = field(default=None, repr=False)
    _language: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self._language = tree_sitter.Language(tree_sitter_php.language_php())
        self._parser = tree_sitter.Parser(self._language)

    @property
    def language(self) -> Any:
        return self._language

    def parse(self, source: str | bytes) -> ParseResult:
        """Parse PHP source text.

        Args:
            source: Source text; bytes must be UTF-8.

        Returns:
            ParseResult with tree and collected diagnostics.

        Raises:
            UnicodeDecodeError: If ``source`` is bytes that are not valid UTF-8.
        """
        if isinstance(source, str):
            content = source.encode("utf-8")
        else:
            source.decode("utf-8")
            content = source

        tree = self._parser.parse(content)
        result = ParseResult(tree=tree, root_node=tree.root_node, source=content)
        self._collect_diagnostics(tree.root_node, result)
        return result

    def parse_for_indexing(self, path: str, source: str | bytes) -> ParseResult:
        """Parse a file about to be indexed, rejecting unusable sources.

        Raises:
            IndexingFailedError: If the source cannot be decoded or parsed.
        """
        try:
            result = self.parse(source)
        except UnicodeDecodeError as e:
            raise IndexingFailedError.unreadable(path, str(e)) from e

        if result.is_fatal:
            first = result.diagnostics[0].message if result.diagnostics else "unparseable source"
            raise IndexingFailedError.parse_failed(path, first)

        if result.diagnostics:
            logger.debug(
                "parse_diagnostics",
                path=path,
                count=len(result.diagnostics),
            )
        return result

    def _collect_diagnostics(self, root: Any, result: ParseResult) -> None:
        stack = [root]
        while stack:
            node = stack.pop()
            result.total_nodes += 1
            if node.type == "ERROR":
                result.error_count += 1
                result.diagnostics.append(self._diagnostic_for_error(node, result.source))
                # Errors nested inside an error node would only repeat it
                continue
            if node.is_missing:
                result.error_count += 1
                result.diagnostics.append(
                    ParseDiagnostic(
                        message=f"Syntax error, missing '{node.type}'",
                        start_offset=node.start_byte,
                        end_offset=node.end_byte,
                        line=node.start_point[0] + 1,
                        column=node.start_point[1],
                    )
                )
            stack.extend(reversed(node.children))

        result.diagnostics.sort(key=lambda d: d.start_offset)

    @staticmethod
    def _diagnostic_for_error(node: Any, source: bytes) -> ParseDiagnostic:
        snippet = source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")
        snippet = " ".join(snippet.split())[:_SNIPPET_LENGTH]
        message = f"Syntax error, unexpected '{snippet}'" if snippet else "Syntax error"
        return ParseDiagnostic(
            message=message,
            start_offset=node.start_byte,
            end_offset=node.end_byte,
            line=node.start_point[0] + 1,
            column=node.start_point[1],
        )
