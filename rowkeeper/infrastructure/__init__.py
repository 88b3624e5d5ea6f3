"""
Infrastructure package for rowkeeper.

Centralizes database connectivity concerns (connection factory, pooling).
Keep this layer focused on I/O and resource management, decoupled from the
query builder and record lifecycle.
"""

from rowkeeper.infrastructure.db_factory import (
    PoolManager,
    build_dsn,
    get_sync_connection,
    get_sync_pool,
)

__all__ = [
    "PoolManager",
    "build_dsn",
    "get_sync_connection",
    "get_sync_pool",
]
