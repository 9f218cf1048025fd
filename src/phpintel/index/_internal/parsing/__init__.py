"""Tree-sitter parsing layer."""

from phpintel.index._internal.parsing.treesitter import ParseResult, PhpParser

__all__ = ["ParseResult", "PhpParser"]
