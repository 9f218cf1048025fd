"""Tests for TypeList."""

from __future__ import annotations

from phpintel.index._internal.deduction import TypeList


class TestTypeList:
    def test_order_is_kept_and_duplicates_dropped(self) -> None:
        assert TypeList(["\\A", "null", "\\A", "", "int"]).to_list() == ["\\A", "null", "int"]

    def test_equality(self) -> None:
        assert TypeList(["int"]) == ["int"]
        assert TypeList(["int"]) == TypeList(["int"])
        assert TypeList(["int", "null"]) != ["null", "int"]

    def test_union(self) -> None:
        assert TypeList(["\\A"]).union(["null", "\\A"]) == ["\\A", "null"]

    def test_without_is_case_insensitive(self) -> None:
        assert TypeList(["\\A", "NULL", "int"]).without_null() == ["\\A", "int"]
        assert TypeList(["\\Foo", "\\Bar"]).without("\\foo") == ["\\Bar"]

    def test_truthiness_and_membership(self) -> None:
        assert not TypeList()
        assert "int" in TypeList(["int"])
        assert len(TypeList(["int", "float"])) == 2
