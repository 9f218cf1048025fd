"""Tests for the tree-sitter PHP parser wrapper."""

from __future__ import annotations

import pytest

from phpintel.core.errors import ErrorCode, IndexingFailedError
from phpintel.index._internal.parsing import PhpParser


@pytest.fixture(scope="module")
def parser() -> PhpParser:
    return PhpParser()


class TestParse:
    """Tests for PhpParser.parse()."""

    def test_valid_source_has_no_diagnostics(self, parser: PhpParser) -> None:
        result = parser.parse("<?php\nclass Foo {}\n")
        assert result.root_node.type == "program"
        assert result.diagnostics == []
        assert not result.has_errors
        assert not result.is_fatal
        assert result.total_nodes > 0

    def test_str_and_bytes_give_same_tree(self, parser: PhpParser) -> None:
        from_str = parser.parse("<?php $a = 1;")
        from_bytes = parser.parse(b"<?php $a = 1;")
        assert from_str.source == from_bytes.source
        assert from_str.root_node.end_byte == from_bytes.root_node.end_byte
        assert not from_bytes.has_errors

    def test_syntax_error_is_recoverable(self, parser: PhpParser) -> None:
        result = parser.parse("<?php\nfunction f() {\n    $x = ;\n}\n")
        assert result.has_errors
        assert not result.is_fatal
        assert result.diagnostics
        assert all(d.message.startswith("Syntax error") for d in result.diagnostics)
        assert any(d.line == 3 for d in result.diagnostics)

    def test_diagnostics_are_sorted_by_offset(self, parser: PhpParser) -> None:
        result = parser.parse("<?php\n$a = ;\n$b = ;\n")
        offsets = [d.start_offset for d in result.diagnostics]
        assert offsets == sorted(offsets)

    def test_invalid_utf8_raises(self, parser: PhpParser) -> None:
        with pytest.raises(UnicodeDecodeError):
            parser.parse(b"<?php \xff\xfe")


class TestParseForIndexing:
    """Tests for PhpParser.parse_for_indexing()."""

    def test_undecodable_source_is_unreadable(self, parser: PhpParser) -> None:
        with pytest.raises(IndexingFailedError) as exc_info:
            parser.parse_for_indexing("bad.php", b"<?php \xff")
        assert exc_info.value.code == ErrorCode.INDEXING_UNREADABLE
        assert exc_info.value.details["path"] == "bad.php"

    def test_recoverable_errors_are_accepted(self, parser: PhpParser) -> None:
        result = parser.parse_for_indexing("a.php", "<?php\nclass A {}\n$x = ;\n")
        assert result.has_errors
