"""Tests for name qualification."""

from __future__ import annotations

import pytest

from phpintel.core.errors import MissingContextError
from phpintel.index._internal.naming import ImportAlias, NameResolver, NamespaceContext
from phpintel.index._internal.naming.resolver import namespace_of, short_name
from phpintel.index.models import ImportKind


class FakeOracle:
    """Knows a fixed set of functions and constants."""

    def __init__(
        self, functions: frozenset[str] = frozenset(), constants: frozenset[str] = frozenset()
    ) -> None:
        self.functions = {f.lower() for f in functions}
        self.constants = set(constants)
        self.queries: list[str] = []

    def function_exists(self, fqsen: str) -> bool:
        self.queries.append(fqsen)
        return fqsen.lower() in self.functions

    def constant_exists(self, fqsen: str) -> bool:
        self.queries.append(fqsen)
        return fqsen in self.constants


def _context(namespace: str = "", *imports: ImportAlias) -> NamespaceContext:
    return NamespaceContext(namespace=namespace, imports=list(imports))


class TestClasslikeNames:
    """Classlike names never depend on what is indexed."""

    def test_fully_qualified_is_verbatim(self) -> None:
        assert NameResolver().resolve("\\A\\B", _context("X")) == "\\A\\B"

    def test_unqualified_uses_current_namespace(self) -> None:
        assert NameResolver().resolve("User", _context("App\\Models")) == "\\App\\Models\\User"

    def test_unqualified_in_global_namespace(self) -> None:
        assert NameResolver().resolve("User", _context()) == "\\User"

    def test_import_wins_case_insensitively(self) -> None:
        context = _context(
            "App", ImportAlias("Repo", "\\Lib\\Repository", ImportKind.CLASSLIKE)
        )
        assert NameResolver().resolve("repo", context) == "\\Lib\\Repository"

    def test_qualified_name_expands_first_segment(self) -> None:
        context = _context("App", ImportAlias("Lib", "\\Vendor\\Lib", ImportKind.CLASSLIKE))
        assert NameResolver().resolve("Lib\\Thing", context) == "\\Vendor\\Lib\\Thing"
        assert NameResolver().resolve("Other\\Thing", context) == "\\App\\Other\\Thing"

    def test_namespace_keyword(self) -> None:
        assert NameResolver().resolve("namespace\\Foo", _context("App")) == "\\App\\Foo"

    def test_special_and_keyword_names(self) -> None:
        resolver = NameResolver()
        assert resolver.resolve("Self", _context("App")) == "self"
        assert resolver.resolve("int", _context("App")) == "int"

    def test_oracle_is_not_consulted(self) -> None:
        oracle = FakeOracle()
        NameResolver(oracle).resolve("Foo", _context("App"))
        assert oracle.queries == []

    def test_function_import_does_not_apply_to_classlikes(self) -> None:
        context = _context("App", ImportAlias("helper", "\\Lib\\helper", ImportKind.FUNCTION))
        assert NameResolver().resolve("helper", context) == "\\App\\helper"

    def test_missing_context(self) -> None:
        with pytest.raises(MissingContextError):
            NameResolver().resolve("Foo", None)


class TestFunctionAndConstantNames:
    """Functions and constants fall back to the global namespace."""

    def test_import_of_same_kind_wins(self) -> None:
        context = _context("App", ImportAlias("helper", "\\Lib\\helper", ImportKind.FUNCTION))
        assert NameResolver().resolve("helper", context, ImportKind.FUNCTION) == "\\Lib\\helper"

    def test_namespaced_function_when_indexed(self) -> None:
        resolver = NameResolver(FakeOracle(functions=frozenset({"\\App\\helper"})))
        assert resolver.resolve("helper", _context("App"), ImportKind.FUNCTION) == "\\App\\helper"

    def test_global_fallback(self) -> None:
        resolver = NameResolver(FakeOracle())
        assert resolver.resolve("strlen", _context("App"), ImportKind.FUNCTION) == "\\strlen"

    def test_global_namespace_skips_oracle(self) -> None:
        oracle = FakeOracle()
        assert NameResolver(oracle).resolve("LIMIT", _context(), ImportKind.CONSTANT) == "\\LIMIT"
        assert oracle.queries == []

    def test_constant_lookup_is_case_sensitive(self) -> None:
        resolver = NameResolver(FakeOracle(constants=frozenset({"\\App\\LIMIT"})))
        assert resolver.resolve("LIMIT", _context("App"), ImportKind.CONSTANT) == "\\App\\LIMIT"
        assert resolver.resolve("limit", _context("App"), ImportKind.CONSTANT) == "\\limit"

    def test_constant_import_alias_is_case_sensitive(self) -> None:
        context = _context("App", ImportAlias("MAX", "\\Lib\\MAX", ImportKind.CONSTANT))
        assert NameResolver().resolve("MAX", context, ImportKind.CONSTANT) == "\\Lib\\MAX"
        assert NameResolver().resolve("max", context, ImportKind.CONSTANT) == "\\max"

    def test_without_oracle_falls_back_to_global(self) -> None:
        assert NameResolver().resolve("helper", _context("App"), ImportKind.FUNCTION) == "\\helper"


class TestHelpers:
    def test_short_name(self) -> None:
        assert short_name("\\A\\B\\C") == "C"
        assert short_name("C") == "C"

    def test_namespace_of(self) -> None:
        assert namespace_of("\\A\\B\\C") == "A\\B"
        assert namespace_of("\\C") == ""
