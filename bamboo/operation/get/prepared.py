from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar, Union

from ...db.engine import Cursor
from ...db.queries import Query, RawQuery
from ...errors import ConfigurationError
from ..batch import MapFunc, map_object, resolve
from ..prepared import PreparedOperation, require
from .resolver import GetResolver

if TYPE_CHECKING:
    from ...storage import Storage

T = TypeVar("T")
R = TypeVar("R")

AnyQuery = Union[Query, RawQuery]


class PreparedGet(PreparedOperation[R]):
    """
    Base for reads. Besides one-off execution, a read can be observed:
    ``observe()`` yields the result now and again after every change to the
    tables the query reads.
    """

    def __init__(self, storage: "Storage", query: AnyQuery, *, resolver: GetResolver) -> None:
        super().__init__(storage)
        if not isinstance(query, (Query, RawQuery)):
            raise ConfigurationError(
                f"Please specify a Query or RawQuery, got {type(query).__name__}"
            )
        self.query = query
        self.resolver = require(resolver, "get resolver")

    def _cursor(self) -> Cursor:
        if isinstance(self.query, Query):
            return resolve(self.resolver.perform_get, self.storage, self.query)
        return resolve(self.resolver.perform_raw_query, self.storage, self.query)

    def observed_tables(self) -> frozenset[str]:
        if isinstance(self.query, Query):
            return frozenset((self.query.table,))
        return self.query.observes_tables

    def observe(self) -> Iterator[R]:
        """
        Cold stream of results.

        The query runs when iteration starts, then once more after each
        publish touching ``observed_tables()``. Close the generator to stop
        observing.

        Raises:
            ConfigurationError: If the query has no tables to observe (a
                                RawQuery without ``observes_tables``)
        """
        tables = self.observed_tables()
        if not tables:
            raise ConfigurationError(
                "RawQuery needs observes_tables to be observed for changes"
            )
        return self._observe(tables)

    def _observe(self, tables: frozenset[str]) -> Iterator[R]:
        # subscribe first so a change landing during the initial read is not lost
        with self.storage.bus.subscribe(tables) as changes:
            yield self.execute()
            for _ in changes:
                yield self.execute()


class PreparedGetCursor(PreparedGet[Cursor]):
    """Rows as a one-shot iterator of dicts."""

    operation_name = "get_cursor"

    def _execute(self) -> Cursor:
        return self._cursor()


class PreparedGetObjects(PreparedGet[list[T]], Generic[T]):
    """Rows mapped to typed objects with ``map_func(row) -> object``."""

    operation_name = "get_objects"

    def __init__(
        self,
        storage: "Storage",
        query: AnyQuery,
        *,
        map_func: MapFunc,
        resolver: GetResolver,
    ) -> None:
        super().__init__(storage, query, resolver=resolver)
        self.map_func = require(map_func, "map_func")

    def _execute(self) -> list[T]:
        return [map_object(self.map_func, row) for row in self._cursor()]


class PreparedGetObject(PreparedGetObjects[T]):
    """First mapped object, or None when the query matches nothing."""

    operation_name = "get_object"

    def __init__(
        self,
        storage: "Storage",
        query: AnyQuery,
        *,
        map_func: MapFunc,
        resolver: GetResolver,
    ) -> None:
        if isinstance(query, Query) and query.limit is None:
            query = dataclasses.replace(query, limit=1)
        super().__init__(storage, query, map_func=map_func, resolver=resolver)

    def _execute(self) -> Optional[T]:  # type: ignore[override]
        for row in self._cursor():
            return map_object(self.map_func, row)
        return None
