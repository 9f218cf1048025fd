"""Tests for namespace scope and import extraction."""

from __future__ import annotations

from phpintel.index._internal.naming import (
    ImportAlias,
    NamespaceScope,
    collect_namespace_scopes,
    context_for_line,
)
from phpintel.index._internal.parsing import PhpParser
from phpintel.index.models import ImportKind


def _scopes(source: str) -> list[NamespaceScope]:
    return collect_namespace_scopes(PhpParser().parse(source).root_node)


class TestCollectNamespaceScopes:
    """Tests for collect_namespace_scopes()."""

    def test_file_without_namespace(self) -> None:
        scopes = _scopes("<?php\nuse Lib\\Foo;\n\nclass A {}\n")
        assert len(scopes) == 1
        assert scopes[0].name == ""
        assert [i.name for i in scopes[0].imports] == ["\\Lib\\Foo"]

    def test_statement_namespace_with_imports(self) -> None:
        scopes = _scopes(
            "<?php\n"
            "namespace App\\Models;\n"
            "\n"
            "use App\\Contracts\\Repo;\n"
            "use Lib\\Thing as Other;\n"
            "use function App\\Util\\helper;\n"
            "use const App\\Util\\LIMIT;\n"
            "\n"
            "class User {}\n"
        )
        named = [s for s in scopes if s.name]
        assert len(named) == 1
        scope = named[0]
        assert scope.name == "App\\Models"
        assert scope.start_line == 2
        by_alias = {i.alias: i for i in scope.imports}
        assert by_alias["Repo"] == ImportAlias(
            "Repo", "\\App\\Contracts\\Repo", ImportKind.CLASSLIKE, 4
        )
        assert by_alias["Other"].name == "\\Lib\\Thing"
        assert by_alias["helper"].kind == ImportKind.FUNCTION
        assert by_alias["LIMIT"].kind == ImportKind.CONSTANT

    def test_group_use(self) -> None:
        scopes = _scopes("<?php\nnamespace App;\nuse Vendor\\{Alpha, Beta as B};\n")
        imports = {i.alias: i.name for s in scopes for i in s.imports}
        assert imports == {"Alpha": "\\Vendor\\Alpha", "B": "\\Vendor\\Beta"}

    def test_multiple_statement_namespaces(self) -> None:
        scopes = _scopes(
            "<?php\n"
            "namespace A;\n"
            "use X\\Y;\n"
            "class One {}\n"
            "namespace B;\n"
            "class Two {}\n"
        )
        named = {s.name: s for s in scopes if s.name}
        assert named["A"].end_line == 4
        assert named["B"].start_line == 5
        assert named["B"].imports == []

    def test_braced_namespaces(self) -> None:
        scopes = _scopes(
            "<?php\n"
            "namespace A {\n"
            "    use X\\Y;\n"
            "}\n"
            "namespace B {\n"
            "}\n"
        )
        named = {s.name: s for s in scopes if s.name}
        assert (named["A"].start_line, named["A"].end_line) == (2, 4)
        assert [i.alias for i in named["A"].imports] == ["Y"]
        assert named["B"].imports == []


class TestContextForLine:
    """Tests for context_for_line()."""

    def test_imports_after_line_are_invisible(self) -> None:
        scope = NamespaceScope(
            name="App",
            start_line=1,
            end_line=20,
            imports=[
                ImportAlias("Early", "\\Lib\\Early", ImportKind.CLASSLIKE, 3),
                ImportAlias("Late", "\\Lib\\Late", ImportKind.CLASSLIKE, 10),
            ],
        )
        context = context_for_line([scope], 5)
        assert context.namespace == "App"
        assert [i.alias for i in context.imports] == ["Early"]

    def test_uncovered_line_is_global(self) -> None:
        context = context_for_line([NamespaceScope("App", 5, 9)], 2)
        assert context.namespace == ""
        assert context.imports == []

    def test_latest_import_wins(self) -> None:
        scope = NamespaceScope(
            name="",
            start_line=1,
            end_line=10,
            imports=[
                ImportAlias("Foo", "\\A\\Foo", ImportKind.CLASSLIKE, 2),
                ImportAlias("Foo", "\\B\\Foo", ImportKind.CLASSLIKE, 3),
            ],
        )
        found = context_for_line([scope], 5).find_import("Foo", ImportKind.CLASSLIKE)
        assert found is not None and found.name == "\\B\\Foo"
