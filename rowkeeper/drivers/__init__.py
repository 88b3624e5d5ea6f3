"""
Database drivers.

`abstract` defines the adapter contract the core calls through; `postgres`
is the bundled psycopg backend.
"""

from rowkeeper.drivers.abstract import (
    AbstractDriver,
    Aborted,
    Committed,
    DriverAdapter,
    TransactionResult,
)
from rowkeeper.drivers.postgres import PostgresDriver

__all__ = [
    "AbstractDriver",
    "Aborted",
    "Committed",
    "DriverAdapter",
    "TransactionResult",
    "PostgresDriver",
]
