from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from .config import StorageConfig
from .db.engine import SqlEngine
from .db.queries import DeleteQuery
from .notify.bus import ChangeBus, Subscription
from .operation.batch import MapFunc, TransactionPolicy
from .operation.delete import (
    DeleteResolver,
    PreparedDeleteByQuery,
    PreparedDeleteCollection,
    PreparedDeleteObject,
)
from .operation.get import (
    DefaultGetResolver,
    GetResolver,
    PreparedGetCursor,
    PreparedGetObject,
    PreparedGetObjects,
)
from .operation.get.prepared import AnyQuery
from .operation.put import PreparedPutCollection, PreparedPutObject, PutResolver

T = TypeVar("T")


class Storage:
    """
    Entry point: prepares put/get/delete operations against one SqlEngine
    and exposes the change notifications they publish.

    Usage:
        storage = Storage(create_engine("sqlite:///app.db"))

        result = storage.put_object(
            user,
            map_func=user_to_row,
            resolver=DefaultPutResolver("users"),
        ).execute()

        with storage.observe_changes({"users"}) as changes:
            ...
    """

    def __init__(
        self,
        engine: Engine,
        *,
        bus: Optional[ChangeBus] = None,
        transactions_supported: bool = True,
    ) -> None:
        self.internal = SqlEngine(engine, bus, transactions_supported=transactions_supported)
        self._owns_engine = False

    @classmethod
    def from_config(cls, config: StorageConfig, *, bus: Optional[ChangeBus] = None) -> "Storage":
        engine = create_engine(config.url, echo=config.echo, pool_pre_ping=config.pool_pre_ping)
        storage = cls(engine, bus=bus, transactions_supported=config.transactions_supported)
        storage._owns_engine = True
        return storage

    @property
    def bus(self) -> ChangeBus:
        return self.internal.bus

    def close(self) -> None:
        self.internal.close()
        if self._owns_engine:
            self.internal.engine.dispose()

    def __enter__(self) -> "Storage":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
        return False

    def put_object(
        self,
        obj: T,
        *,
        map_func: MapFunc,
        resolver: PutResolver[T],
    ) -> PreparedPutObject[T]:
        return PreparedPutObject(self, obj, map_func=map_func, resolver=resolver)

    def put_objects(
        self,
        objects: Iterable[T],
        *,
        map_func: MapFunc,
        resolver: PutResolver[T],
        transaction: TransactionPolicy = TransactionPolicy.USE_IF_SUPPORTED,
    ) -> PreparedPutCollection[T]:
        return PreparedPutCollection(
            self, objects, map_func=map_func, resolver=resolver, transaction=transaction
        )

    def get_cursor(
        self,
        query: AnyQuery,
        *,
        resolver: Optional[GetResolver] = None,
    ) -> PreparedGetCursor:
        return PreparedGetCursor(self, query, resolver=resolver or DefaultGetResolver())

    def get_objects(
        self,
        query: AnyQuery,
        *,
        map_func: MapFunc,
        resolver: Optional[GetResolver] = None,
    ) -> PreparedGetObjects[Any]:
        return PreparedGetObjects(
            self, query, map_func=map_func, resolver=resolver or DefaultGetResolver()
        )

    def get_object(
        self,
        query: AnyQuery,
        *,
        map_func: MapFunc,
        resolver: Optional[GetResolver] = None,
    ) -> PreparedGetObject[Any]:
        return PreparedGetObject(
            self, query, map_func=map_func, resolver=resolver or DefaultGetResolver()
        )

    def delete_object(self, obj: T, *, resolver: DeleteResolver[T]) -> PreparedDeleteObject[T]:
        return PreparedDeleteObject(self, obj, resolver=resolver)

    def delete_objects(
        self,
        objects: Iterable[T],
        *,
        resolver: DeleteResolver[T],
        transaction: TransactionPolicy = TransactionPolicy.USE_IF_SUPPORTED,
    ) -> PreparedDeleteCollection[T]:
        return PreparedDeleteCollection(self, objects, resolver=resolver, transaction=transaction)

    def delete_by_query(self, delete_query: DeleteQuery) -> PreparedDeleteByQuery:
        return PreparedDeleteByQuery(self, delete_query)

    def observe_changes(self, tables: Iterable[str] | str) -> Subscription:
        """Subscribe to change sets touching any of ``tables``."""
        return self.bus.subscribe(tables)
