from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Generic, TypeVar

from ...db.queries import DeleteQuery
from ...errors import ConfigurationError
from ..batch import (
    TransactionPolicy,
    expect_result,
    resolve,
    run_batch,
    run_single,
    transaction_policy,
)
from ..prepared import PreparedOperation, require
from .resolver import DeleteResolver
from .results import DeleteCollectionResult, DeleteResult

if TYPE_CHECKING:
    from ...storage import Storage

T = TypeVar("T")


class _DeleteStep(Generic[T]):
    """perform_delete -> after_delete for one object."""

    def __init__(self, storage: "Storage", resolver: DeleteResolver[T]) -> None:
        self.storage = storage
        self.resolver = resolver

    def __call__(self, obj: T) -> DeleteResult:
        result = resolve(self.resolver.perform_delete, self.storage, obj)
        expect_result(result, DeleteResult, "perform_delete")
        resolve(self.resolver.after_delete, obj, result)
        return result


class PreparedDeleteObject(PreparedOperation[DeleteResult], Generic[T]):
    operation_name = "delete_object"

    def __init__(self, storage: "Storage", obj: T, *, resolver: DeleteResolver[T]) -> None:
        super().__init__(storage)
        self.obj = require(obj, "object to delete")
        self.resolver = require(resolver, "delete resolver")

    def _execute(self) -> DeleteResult:
        return run_single(self.storage, self.obj, _DeleteStep(self.storage, self.resolver))


class PreparedDeleteCollection(PreparedOperation[DeleteCollectionResult[T]], Generic[T]):
    operation_name = "delete_collection"

    def __init__(
        self,
        storage: "Storage",
        objects: Iterable[T],
        *,
        resolver: DeleteResolver[T],
        transaction: TransactionPolicy = TransactionPolicy.USE_IF_SUPPORTED,
    ) -> None:
        super().__init__(storage)
        self.objects = list(require(objects, "objects to delete"))
        self.resolver = require(resolver, "delete resolver")
        self.transaction = transaction_policy(transaction)

    def _execute(self) -> DeleteCollectionResult[T]:
        step = _DeleteStep(self.storage, self.resolver)
        return run_batch(self.storage, self.objects, step, self.transaction, DeleteCollectionResult())


class PreparedDeleteByQuery(PreparedOperation[DeleteResult]):
    """Delete every row matching a DeleteQuery; publishes its table once."""

    operation_name = "delete_by_query"

    def __init__(self, storage: "Storage", delete_query: DeleteQuery) -> None:
        super().__init__(storage)
        if not isinstance(delete_query, DeleteQuery):
            raise ConfigurationError(
                f"Please specify a DeleteQuery, got {type(delete_query).__name__}"
            )
        self.delete_query = delete_query

    def _execute(self) -> DeleteResult:
        rows_deleted = self.storage.internal.delete(self.delete_query)
        result = DeleteResult.new_delete_result(rows_deleted, self.delete_query.table)
        self.storage.internal.notify_about_changes(result.affected_tables)
        return result
