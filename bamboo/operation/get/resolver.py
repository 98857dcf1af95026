from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ...db.engine import Cursor
from ...db.queries import Query, RawQuery

if TYPE_CHECKING:
    from ...storage import Storage


class GetResolver(ABC):
    """
    Decides how a query is executed for one entity type.
    """

    @abstractmethod
    def perform_get(self, storage: "Storage", query: Query) -> Cursor:
        ...

    @abstractmethod
    def perform_raw_query(self, storage: "Storage", raw_query: RawQuery) -> Cursor:
        ...


class DefaultGetResolver(GetResolver):

    def perform_get(self, storage: "Storage", query: Query) -> Cursor:
        return storage.internal.query(query)

    def perform_raw_query(self, storage: "Storage", raw_query: RawQuery) -> Cursor:
        return storage.internal.raw_query(raw_query)
