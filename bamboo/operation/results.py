from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any, Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def affected_table_set(tables: Iterable[str] | str) -> frozenset[str]:
    """
    Normalize an affected-tables argument.

    Raises:
        ValueError: If no table is given; every successful write touches at least one
    """
    table_set = frozenset((tables,)) if isinstance(tables, str) else frozenset(tables)
    if not table_set:
        raise ValueError("affected_tables cannot be empty")
    return table_set


class CollectionResult(Generic[T, R]):
    """
    Per-object results of a batch operation, keyed by object identity.

    Two equal but distinct objects get two entries; unhashable objects are
    fine. Objects are kept referenced so their ids stay unique for the
    lifetime of the result.
    """

    def __init__(self) -> None:
        self._entries: dict[int, tuple[T, R]] = {}

    def _add(self, obj: T, result: R) -> None:
        self._entries[id(obj)] = (obj, result)

    def __getitem__(self, obj: T) -> R:
        try:
            return self._entries[id(obj)][1]
        except KeyError:
            raise KeyError(f"No result for object {obj!r}") from None

    def get(self, obj: T, default: Any = None) -> R | Any:
        entry = self._entries.get(id(obj))
        return default if entry is None else entry[1]

    def __contains__(self, obj: object) -> bool:
        return id(obj) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return (obj for obj, _ in self._entries.values())

    def items(self) -> list[tuple[T, R]]:
        return list(self._entries.values())

    def results(self) -> list[R]:
        return [result for _, result in self._entries.values()]

    def affected_tables(self) -> frozenset[str]:
        tables: frozenset[str] = frozenset()
        for result in self.results():
            tables |= result.affected_tables
        return tables

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self)} results)"
