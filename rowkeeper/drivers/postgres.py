"""
PostgreSQL driver backed by psycopg 3 and psycopg_pool.

Statements run on a pooled connection. Inside `transaction`, the body's
statements all run on the transaction's connection, which is tracked in a
context variable so concurrent threads and tasks each see their own. Nested
transactions become savepoints.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Generator, List, Mapping, Optional, Sequence, TypeVar

import psycopg
from psycopg import Connection
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from rowkeeper.drivers.abstract import (
    AbstractDriver,
    Aborted,
    Committed,
    Options,
    TransactionResult,
)
from rowkeeper.drivers.sql import render
from rowkeeper.errors import DriverError
from rowkeeper.infrastructure.db_factory import get_sync_connection, get_sync_pool
from rowkeeper.query.ast import Query, Select
from rowkeeper.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class PostgresDriver(AbstractDriver):
    """
    Driver adapter for PostgreSQL.

    Parameters
    ----------
    pool : ConnectionPool, optional
        Pool to borrow connections from. Defaults to the shared pool built from
        settings on first use.
    """

    name: str = "postgres"

    def __init__(self, pool: Optional[ConnectionPool] = None) -> None:
        self._pool = pool
        self._active: ContextVar[Optional[Connection]] = ContextVar(
            f"rowkeeper_pg_active_{id(self)}", default=None
        )

    @property
    def pool(self) -> ConnectionPool:
        if self._pool is None:
            self._pool = get_sync_pool()
        return self._pool

    @contextmanager
    def _connection(self) -> Generator[Connection, None, None]:
        active = self._active.get()
        if active is not None:
            yield active
            return
        with self.pool.connection() as conn:
            yield conn

    def _execute(self, query: Query, row_factory: Any = None) -> Any:
        statement, params = render(query)
        with self._connection() as conn:
            if log.isEnabledFor(logging.DEBUG):
                log.debug("execute %s", statement.as_string(conn), extra={"params": params})
            try:
                with conn.cursor(row_factory=row_factory) as cur:
                    cur.execute(statement, params)
                    if isinstance(query, Select):
                        return cur.fetchall()
                    return cur.rowcount
            except psycopg.Error as exc:
                raise DriverError(str(exc)) from exc

    def select(self, query: Select, options: Options = None) -> List[Sequence[Any]]:
        return [tuple(row) for row in self._execute(query)]

    def select_dicts(self, query: Select, options: Options = None) -> List[Mapping[str, Any]]:
        return self._execute(query, row_factory=dict_row)

    def update(self, query: Query, options: Options = None) -> int:
        return self._execute(query)

    def get_last_insert_id(self, options: Options = None) -> Any:
        conn = self._active.get()
        if conn is None:
            raise DriverError("get_last_insert_id called outside a transaction")
        try:
            row = conn.execute("SELECT lastval()").fetchone()
        except psycopg.Error as exc:
            raise DriverError(str(exc)) from exc
        return row[0]

    def transaction(self, body: Callable[[], T], options: Options = None) -> TransactionResult:
        """
        Run ``body`` in a transaction and report the outcome.

        Returns ``Committed(value)`` when the body returns and the commit
        succeeds. Any exception raised by the body (or the commit) rolls the
        transaction back and is returned as ``Aborted(error)``; psycopg errors
        are wrapped in DriverError.
        """
        active = self._active.get()
        try:
            if active is not None:
                with active.transaction():
                    return Committed(body())
            with self.pool.connection() as conn:
                token = self._active.set(conn)
                try:
                    with conn.transaction():
                        value = body()
                finally:
                    self._active.reset(token)
            return Committed(value)
        except psycopg.Error as exc:
            log.warning("transaction aborted: %s", exc)
            error = DriverError(str(exc))
            error.__cause__ = exc
            return Aborted(error)
        except Exception as exc:
            log.warning("transaction aborted: %s", exc)
            return Aborted(exc)

    def ping(self, dsn: Optional[str] = None) -> bool:
        """Round-trip ``SELECT 1`` on a fresh connection."""
        with get_sync_connection(dsn) as conn:
            return conn.execute("SELECT 1").fetchone()[0] == 1


__all__ = ["PostgresDriver"]
