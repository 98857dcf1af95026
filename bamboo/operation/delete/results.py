from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TypeVar

from ..results import CollectionResult, affected_table_set

T = TypeVar("T")


@dataclass(frozen=True)
class DeleteResult:
    affected_tables: frozenset[str]
    rows_deleted: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "affected_tables", affected_table_set(self.affected_tables))
        if self.rows_deleted < 0:
            raise ValueError(f"rows_deleted must be >= 0, got {self.rows_deleted}")

    @classmethod
    def new_delete_result(cls, rows_deleted: int, affected_tables: Iterable[str] | str) -> "DeleteResult":
        return cls(affected_tables=affected_table_set(affected_tables), rows_deleted=rows_deleted)


class DeleteCollectionResult(CollectionResult[T, DeleteResult]):

    def number_of_rows_deleted(self) -> int:
        return sum(result.rows_deleted for result in self.results())
