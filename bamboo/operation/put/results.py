from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional, TypeVar

from ..results import CollectionResult, affected_table_set

T = TypeVar("T")


@dataclass(frozen=True)
class PutResult:
    """
    Outcome of one put: either an insert (with the generated id) or an
    update (with the number of rows changed).
    """
    affected_tables: frozenset[str]
    inserted_id: Optional[int] = None
    rows_updated: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "affected_tables", affected_table_set(self.affected_tables))
        if (self.inserted_id is None) == (self.rows_updated is None):
            raise ValueError("PutResult must be exactly one of insert or update")
        if self.rows_updated is not None and self.rows_updated < 0:
            raise ValueError(f"rows_updated must be >= 0, got {self.rows_updated}")

    @classmethod
    def new_insert_result(cls, inserted_id: int, affected_tables: Iterable[str] | str) -> "PutResult":
        if inserted_id is None:
            raise ValueError("inserted_id cannot be None for an insert result")
        return cls(affected_tables=affected_table_set(affected_tables), inserted_id=inserted_id)

    @classmethod
    def new_update_result(cls, rows_updated: int, affected_tables: Iterable[str] | str) -> "PutResult":
        return cls(affected_tables=affected_table_set(affected_tables), rows_updated=rows_updated)

    def was_inserted(self) -> bool:
        return self.inserted_id is not None

    def was_updated(self) -> bool:
        return self.rows_updated is not None


class PutCollectionResult(CollectionResult[T, PutResult]):

    def number_of_inserts(self) -> int:
        return sum(1 for result in self.results() if result.was_inserted())

    def number_of_updates(self) -> int:
        return sum(result.rows_updated for result in self.results() if result.was_updated())
