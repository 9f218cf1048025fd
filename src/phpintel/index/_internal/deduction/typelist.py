"""Ordered, duplicate-free list of resolved type strings."""

from __future__ import annotations

from collections.abc import Iterable, Iterator


class TypeList:
    """Candidate types for an expression, in discovery order.

    Compares equal to a plain list with the same items, which keeps
    assertions short::

        assert engine.deduce(node, doc) == ["\\\\A\\\\Foo", "null"]
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[str] = ()) -> None:
        self._items: list[str] = []
        for item in items:
            if item and item not in self._items:
                self._items.append(item)

    def union(self, other: Iterable[str]) -> TypeList:
        return TypeList([*self._items, *other])

    def without(self, *types: str) -> TypeList:
        excluded = {t.lower() for t in types}
        return TypeList(t for t in self._items if t.lower() not in excluded)

    def without_null(self) -> TypeList:
        return self.without("null")

    def to_list(self) -> list[str]:
        return list(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TypeList):
            return self._items == other._items
        if isinstance(other, list):
            return self._items == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._items))

    def __repr__(self) -> str:
        return f"TypeList({self._items!r})"


EMPTY = TypeList()
