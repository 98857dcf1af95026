from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, Mapping, Optional, TypeVar

from ...db.queries import DeleteQuery
from .results import DeleteResult

if TYPE_CHECKING:
    from ...storage import Storage

T = TypeVar("T")


class DeleteResolver(ABC, Generic[T]):
    """
    Decides how one object is deleted.
    """

    @abstractmethod
    def perform_delete(self, storage: "Storage", obj: T) -> DeleteResult:
        ...

    def after_delete(self, obj: T, result: DeleteResult) -> None:
        """Called once per object after its delete ran. No-op by default."""
        return None


class DefaultDeleteResolver(DeleteResolver[T]):
    """
    Delete the row whose primary key equals the object's id.

    The id is read with ``id_getter`` when given, else from the mapping key or
    attribute named ``id_column``.
    """

    def __init__(
        self,
        table: str,
        id_column: str = "id",
        id_getter: Optional[Callable[[T], Any]] = None,
    ) -> None:
        self.table = table
        self.id_column = id_column
        self.id_getter = id_getter
        # validates the table name up front
        DeleteQuery(table)

    def _id_of(self, obj: T) -> Any:
        if self.id_getter is not None:
            return self.id_getter(obj)
        if isinstance(obj, Mapping):
            return obj.get(self.id_column)
        return getattr(obj, self.id_column, None)

    def perform_delete(self, storage: "Storage", obj: T) -> DeleteResult:
        id_value = self._id_of(obj)
        if id_value is None:
            raise ValueError(f"Cannot delete {obj!r} from {self.table}: it has no {self.id_column}")

        delete_query = DeleteQuery(
            self.table,
            where=f"{self.id_column} = :id_value",
            where_args={"id_value": id_value},
        )
        rows_deleted = storage.internal.delete(delete_query)
        return DeleteResult.new_delete_result(rows_deleted, self.table)
