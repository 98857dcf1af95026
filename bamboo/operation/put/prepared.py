from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Generic, TypeVar

from ..batch import (
    MapFunc,
    TransactionPolicy,
    expect_result,
    map_object,
    resolve,
    run_batch,
    run_single,
    transaction_policy,
)
from ..prepared import PreparedOperation, require
from .resolver import PutResolver
from .results import PutCollectionResult, PutResult

if TYPE_CHECKING:
    from ...storage import Storage

T = TypeVar("T")


class _PutStep(Generic[T]):
    """map -> perform_put -> after_put for one object."""

    def __init__(self, storage: "Storage", map_func: MapFunc, resolver: PutResolver[T]) -> None:
        self.storage = storage
        self.map_func = map_func
        self.resolver = resolver

    def __call__(self, obj: T) -> PutResult:
        row = map_object(self.map_func, obj)
        result = resolve(self.resolver.perform_put, self.storage, row)
        expect_result(result, PutResult, "perform_put")
        resolve(self.resolver.after_put, obj, result)
        return result


class PreparedPutObject(PreparedOperation[PutResult], Generic[T]):
    operation_name = "put_object"

    def __init__(
        self,
        storage: "Storage",
        obj: T,
        *,
        map_func: MapFunc,
        resolver: PutResolver[T],
    ) -> None:
        super().__init__(storage)
        self.obj = require(obj, "object to put")
        self.map_func = require(map_func, "map_func")
        self.resolver = require(resolver, "put resolver")

    def _execute(self) -> PutResult:
        step = _PutStep(self.storage, self.map_func, self.resolver)
        return run_single(self.storage, self.obj, step)


class PreparedPutCollection(PreparedOperation[PutCollectionResult[T]], Generic[T]):
    """
    Put many objects sharing one map func and resolver.

    See ``run_batch`` for transaction and notification semantics.
    """

    operation_name = "put_collection"

    def __init__(
        self,
        storage: "Storage",
        objects: Iterable[T],
        *,
        map_func: MapFunc,
        resolver: PutResolver[T],
        transaction: TransactionPolicy = TransactionPolicy.USE_IF_SUPPORTED,
    ) -> None:
        super().__init__(storage)
        self.objects = list(require(objects, "objects to put"))
        self.map_func = require(map_func, "map_func")
        self.resolver = require(resolver, "put resolver")
        self.transaction = transaction_policy(transaction)

    def _execute(self) -> PutCollectionResult[T]:
        step = _PutStep(self.storage, self.map_func, self.resolver)
        return run_batch(self.storage, self.objects, step, self.transaction, PutCollectionResult())
