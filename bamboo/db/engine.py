from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import EngineError
from ..notify.bus import ChangeBus
from .helpers import build_delete, build_insert, build_select, build_update
from .metrics import observe_transaction
from .queries import DeleteQuery, InsertQuery, Query, RawQuery, UpdateQuery

logger = logging.getLogger(__name__)

Cursor = Iterator[dict[str, Any]]


class SqlEngine:
    """
    Execution handle owning one live SQLAlchemy connection.

    Outside an explicit transaction every statement runs in its own short
    transaction and is committed when the call returns. Between
    ``begin_transaction()`` and ``end_transaction()`` statements join the open
    transaction, which commits only if ``set_transaction_successful()`` was
    called first:

        engine.begin_transaction()
        try:
            engine.insert(InsertQuery("users"), {"email": "a@example.com"})
            engine.set_transaction_successful()
        finally:
            engine.end_transaction()

    The handle is not thread-safe; callers serialize access (one writer).
    It never publishes changes on its own; ``notify_about_changes()`` is called
    by the operations once their writes are committed.
    """

    def __init__(
        self,
        engine: Engine,
        bus: Optional[ChangeBus] = None,
        *,
        transactions_supported: bool = True,
    ) -> None:
        self.engine = engine
        self.bus = bus if bus is not None else ChangeBus()
        self._transactions_supported = transactions_supported
        self._conn: Connection | None = engine.connect()
        self._tx = None
        self._tx_successful = False

    def __enter__(self) -> "SqlEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
        return False

    def close(self) -> None:
        """Roll back any open transaction and release the connection."""
        if self._conn is None:
            return
        try:
            if self._tx is not None:
                logger.warning("Closing SqlEngine with an open transaction; rolling back")
                self._tx.rollback()
                observe_transaction("rollback")
        finally:
            self._conn.close()
            self._conn = None
            self._tx = None
            self._tx_successful = False

    def _connection(self) -> Connection:
        if self._conn is None:
            raise RuntimeError("SqlEngine is closed")
        return self._conn

    @contextmanager
    def _statement(self) -> Iterator[Connection]:
        conn = self._connection()
        try:
            if self._tx is not None:
                yield conn
            else:
                with conn.begin():
                    yield conn
        except SQLAlchemyError as exc:
            raise EngineError(str(exc)) from exc

    def _fetch(self, sql: str, params: Mapping[str, Any]) -> Cursor:
        with self._statement() as conn:
            result = conn.execute(text(sql), dict(params))
            try:
                rows = [dict(row) for row in result.mappings()]
            finally:
                result.close()
        return iter(rows)

    def raw_query(self, raw_query: RawQuery) -> Cursor:
        """
        Execute arbitrary SQL and return its rows.

        Returns:
            One-shot iterator of row dicts
        """
        return self._fetch(raw_query.query, raw_query.args)

    def query(self, query: Query) -> Cursor:
        """
        Execute a structured SELECT and return its rows.

        Returns:
            One-shot iterator of row dicts
        """
        sql = build_select(
            query.table,
            columns=query.columns,
            distinct=query.distinct,
            where=query.where,
            group_by=query.group_by,
            having=query.having,
            order_by=query.order_by,
            limit=query.limit,
        )
        return self._fetch(sql, query.where_args)

    def insert(self, insert_query: InsertQuery, row: Mapping[str, Any]) -> int:
        """
        Insert one row and return its generated id.

        The id comes from the DBAPI cursor's ``lastrowid`` (SQLite, MySQL).

        Raises:
            EngineError: If the engine rejects the row (constraint violation,
                         unknown column, ...) or the driver reports no row id
            ValueError: If ``row`` is empty
        """
        sql = build_insert(insert_query.table, list(row.keys()))
        with self._statement() as conn:
            result = conn.execute(text(sql), dict(row))
            try:
                inserted_id = result.lastrowid
            finally:
                result.close()
            if inserted_id is None:
                # inside the statement: an auto-committed insert is rolled back
                raise EngineError(
                    f"Insert into {insert_query.table} succeeded but the driver reported no row id; "
                    f"{self.engine.dialect.name} drivers without lastrowid support are not supported"
                )
        return inserted_id

    def update(self, update_query: UpdateQuery, row: Mapping[str, Any]) -> int:
        """
        Update matching rows and return how many were changed. Zero is not an error.
        """
        sql, params = build_update(
            update_query.table, row, update_query.where, update_query.where_args
        )
        with self._statement() as conn:
            result = conn.execute(text(sql), params)
            try:
                return int(result.rowcount)
            finally:
                result.close()

    def delete(self, delete_query: DeleteQuery) -> int:
        """
        Delete matching rows and return how many were removed. Zero is not an error.
        """
        sql = build_delete(delete_query.table, delete_query.where)
        with self._statement() as conn:
            result = conn.execute(text(sql), dict(delete_query.where_args))
            try:
                return int(result.rowcount)
            finally:
                result.close()

    def transactions_supported(self) -> bool:
        return self._transactions_supported

    def in_transaction(self) -> bool:
        return self._tx is not None

    def begin_transaction(self) -> None:
        """
        Open an explicit transaction.

        Raises:
            RuntimeError: If a transaction is already open; nesting is not supported
            EngineError: If the engine fails to begin
        """
        if self._tx is not None:
            raise RuntimeError("A transaction is already open; nested transactions are not supported")
        try:
            self._tx = self._connection().begin()
        except SQLAlchemyError as exc:
            raise EngineError(str(exc)) from exc
        self._tx_successful = False
        logger.debug("Transaction started")

    def set_transaction_successful(self) -> None:
        """Mark the open transaction to be committed by ``end_transaction()``."""
        if self._tx is None:
            raise RuntimeError("No open transaction to mark as successful")
        self._tx_successful = True

    def end_transaction(self) -> None:
        """
        Commit the open transaction if it was marked successful, otherwise roll back.

        Raises:
            RuntimeError: If no transaction is open
            EngineError: If commit or rollback fails
        """
        if self._tx is None:
            raise RuntimeError("No open transaction to end")

        tx, successful = self._tx, self._tx_successful
        self._tx = None
        self._tx_successful = False
        try:
            if successful:
                tx.commit()
            else:
                tx.rollback()
        except SQLAlchemyError as exc:
            observe_transaction("rollback")
            raise EngineError(str(exc)) from exc

        outcome = "commit" if successful else "rollback"
        observe_transaction(outcome)
        logger.debug("Transaction ended with %s", outcome)

    def notify_about_changes(self, affected_tables: Iterable[str]) -> None:
        self.bus.publish(affected_tables)
