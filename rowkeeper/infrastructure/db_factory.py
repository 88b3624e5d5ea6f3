"""
Database connection factory utilities for the PostgreSQL driver.

Provides a process-wide connection pool with lifecycle management. The
PoolManager singleton ensures the pool is closed on interpreter exit.

One-off connections retry transient failures using tenacity.
"""

from __future__ import annotations

import atexit
import threading
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

import psycopg
from psycopg import Connection
from psycopg_pool import ConnectionPool
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from rowkeeper.config import Settings, get_settings
from rowkeeper.utils.logging import get_logger

log = get_logger(__name__)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def connect_kwargs(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Extra libpq parameters applied to every connection."""
    settings = settings or get_settings()
    kwargs: Dict[str, Any] = {}
    if settings.db_statement_timeout_ms > 0:
        kwargs["options"] = f"-c statement_timeout={settings.db_statement_timeout_ms}"
    return kwargs


class PoolManager:
    """
    Thread-safe singleton owning the shared connection pool.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._pool: Optional[ConnectionPool] = None
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_pool(
        self, min_size: Optional[int] = None, max_size: Optional[int] = None
    ) -> ConnectionPool:
        """
        Get or create the connection pool.

        Parameters
        ----------
        min_size : int, optional
            Minimum number of idle connections to keep. Defaults to settings.
        max_size : int, optional
            Maximum total connections in the pool. Defaults to settings.

        Returns
        -------
        ConnectionPool
            The managed pool instance.
        """
        with self._lock:
            if self._pool is None:
                settings = get_settings()
                self._pool = ConnectionPool(
                    conninfo=build_dsn(settings),
                    min_size=min_size or settings.db_pool_min_size,
                    max_size=max_size or settings.db_pool_max_size,
                    kwargs=connect_kwargs(settings),
                    open=True,
                )
                log.info(
                    "opened connection pool",
                    extra={"db_host": settings.db_host, "db_name": settings.db_name},
                )
            return self._pool

    @contextmanager
    def connection(self) -> Generator[Connection, None, None]:
        """
        Context manager for borrowing a connection from the pool.

        Example
        -------
            manager = PoolManager()
            with manager.connection() as conn:
                conn.execute("SELECT 1")
        """
        pool = self.get_pool()
        with pool.connection() as conn:
            yield conn

    def close_all(self) -> None:
        """
        Close the managed pool and release its connections.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            if self._pool is not None:
                try:
                    self._pool.close()
                except psycopg.Error as exc:
                    log.warning("error while closing connection pool: %s", exc)
                finally:
                    self._pool = None


def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Open a dedicated connection, retrying transient errors.

    Retries ``DB_CONNECT_RETRIES`` times with exponential backoff for
    ``OperationalError``/``InterfaceError``. Prefer the pool for repeated use.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    settings = get_settings()
    retrying = Retrying(
        stop=stop_after_attempt(max(settings.db_connect_retries, 1)),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
        reraise=True,
    )
    for attempt in retrying:
        with attempt:
            return psycopg.connect(dsn or build_dsn(settings), **connect_kwargs(settings))
    raise AssertionError("unreachable")  # pragma: no cover


def get_sync_pool(min_size: Optional[int] = None, max_size: Optional[int] = None) -> ConnectionPool:
    """
    Get or create the shared connection pool via PoolManager.
    """
    return PoolManager().get_pool(min_size=min_size, max_size=max_size)


__all__ = [
    "PoolManager",
    "build_dsn",
    "connect_kwargs",
    "get_sync_connection",
    "get_sync_pool",
]
