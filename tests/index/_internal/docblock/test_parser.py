"""Tests for docblock comment parsing."""

from __future__ import annotations

from phpintel.index._internal.docblock.parser import DocblockParser, split_type


class TestSplitType:
    """Tests for split_type()."""

    def test_simple(self) -> None:
        assert split_type("int $x the x") == ("int", "$x the x")

    def test_generic_with_space(self) -> None:
        assert split_type("array<string, int> $map") == ("array<string, int>", "$map")

    def test_spaced_union(self) -> None:
        assert split_type("int | string $x") == ("int | string", "$x")

    def test_type_only(self) -> None:
        assert split_type("Foo") == ("Foo", "")


class TestDocblockParser:
    """Tests for DocblockParser.parse()."""

    def test_empty(self) -> None:
        parsed = DocblockParser().parse(None)
        assert parsed.summary is None
        assert parsed.params == {}

    def test_summary_and_description(self) -> None:
        parsed = DocblockParser().parse(
            """/**
             * Short summary
             * continued.
             *
             * Long description
             * spanning lines.
             */"""
        )
        assert parsed.summary == "Short summary continued."
        assert parsed.description == "Long description\nspanning lines."

    def test_param_tags(self) -> None:
        parsed = DocblockParser().parse(
            """/**
             * @param int|null $a First.
             * @param Foo ...$rest
             * @param &$ref
             */"""
        )
        assert parsed.params["$a"].type == "int|null"
        assert parsed.params["$a"].description == "First."
        assert parsed.params["$rest"].is_variadic
        assert parsed.params["$ref"].is_reference
        assert parsed.params["$ref"].type is None

    def test_return_and_throws(self) -> None:
        parsed = DocblockParser().parse(
            """/**
             * @return static The instance.
             * @throws \\RuntimeException When broken.
             */"""
        )
        assert parsed.return_tag is not None
        assert parsed.return_tag.type == "static"
        assert parsed.return_tag.description == "The instance."
        assert [t.type for t in parsed.throws] == ["\\RuntimeException"]

    def test_var_tag_orders(self) -> None:
        parser = DocblockParser()
        for text in ("/** @var Foo $x */", "/** @var $x Foo */"):
            tag = parser.parse(text).var_for("$x")
            assert tag is not None and tag.type == "Foo"
        unnamed = parser.parse("/** @var Foo */").var_for("$anything")
        assert unnamed is not None and unnamed.name is None

    def test_var_for_prefers_named_tag(self) -> None:
        parsed = DocblockParser().parse("/** @var A\n * @var B $b */")
        tag = parsed.var_for("$b")
        assert tag is not None and tag.type == "B"

    def test_deprecated_and_inheritdoc(self) -> None:
        parsed = DocblockParser().parse("/** {@inheritDoc} */")
        assert parsed.inherits_doc
        assert not parsed.has_own_documentation

        parsed = DocblockParser().parse("/**\n * Text.\n * @deprecated\n */")
        assert parsed.is_deprecated
        assert parsed.has_own_documentation

    def test_property_tags(self) -> None:
        parsed = DocblockParser().parse(
            """/**
             * @property int $count
             * @property-read Foo $foo Read only.
             * @property-write $raw
             */"""
        )
        by_name = {p.name: p for p in parsed.properties}
        assert by_name["count"].type == "int"
        assert not by_name["foo"].is_writable
        assert by_name["foo"].description == "Read only."
        assert not by_name["raw"].is_readable
        assert by_name["raw"].type is None

    def test_method_tag(self) -> None:
        parsed = DocblockParser().parse(
            "/** @method static Foo|null "
            "find(int $id, array<string, int> $opts = [], ...$more) Finds. */"
        )
        method = parsed.methods[0]
        assert method.name == "find"
        assert method.is_static
        assert method.return_type == "Foo|null"
        assert method.description == "Finds."
        assert [p.name for p in method.parameters] == ["id", "opts", "more"]
        assert method.parameters[1].type == "array<string, int>"
        assert method.parameters[1].default_value == "[]"
        assert method.parameters[2].is_variadic

    def test_method_tag_without_return_type(self) -> None:
        method = DocblockParser().parse("/** @method run() */").methods[0]
        assert method.name == "run"
        assert method.return_type is None
        assert method.parameters == []
