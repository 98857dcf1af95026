from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, Mapping, Optional, TypeVar

from ...db.queries import InsertQuery, UpdateQuery
from .results import PutResult

if TYPE_CHECKING:
    from ...storage import Storage

T = TypeVar("T")


class PutResolver(ABC, Generic[T]):
    """
    Decides how a mapped row is written for one entity type.
    """

    @abstractmethod
    def perform_put(self, storage: "Storage", row: Mapping[str, Any]) -> PutResult:
        """Write ``row`` through ``storage.internal`` and describe what happened."""
        ...

    @abstractmethod
    def after_put(self, obj: T, result: PutResult) -> None:
        """Called once per object after its row was written."""
        ...


class DefaultPutResolver(PutResolver[T]):
    """
    Insert-or-update by primary key.

    - Row without an id (missing or None): INSERT without the id column; the
      engine generates one.
    - Row with an id: UPDATE by id; if no row matched, INSERT with that id.

    After an insert the id is written back onto ``obj.<id_attribute>`` when the
    object has such an attribute.
    """

    def __init__(
        self,
        table: str,
        id_column: str = "id",
        id_attribute: Optional[str] = None,
    ) -> None:
        self.table = table
        self.id_column = id_column
        self.id_attribute = id_attribute or id_column
        self._insert_query = InsertQuery(table)

    def perform_put(self, storage: "Storage", row: Mapping[str, Any]) -> PutResult:
        internal = storage.internal
        id_value = row.get(self.id_column)

        if id_value is None:
            values = {k: v for k, v in row.items() if k != self.id_column}
            inserted_id = internal.insert(self._insert_query, values)
            return PutResult.new_insert_result(inserted_id, self.table)

        update_query = UpdateQuery(
            self.table,
            where=f"{self.id_column} = :id_value",
            where_args={"id_value": id_value},
        )
        rows_updated = internal.update(update_query, row)
        if rows_updated > 0:
            return PutResult.new_update_result(rows_updated, self.table)

        internal.insert(self._insert_query, row)
        return PutResult.new_insert_result(id_value, self.table)

    def after_put(self, obj: T, result: PutResult) -> None:
        if result.was_inserted() and hasattr(obj, self.id_attribute):
            setattr(obj, self.id_attribute, result.inserted_id)
