"""
rowkeeper - a small object-relational mapping core.

Entities are described by explicit schema values rather than per-entity code:

- Field descriptors with strict string parsing for form input
- Immutable records with a new/persisted/deleted lifecycle
- A pure query builder producing a relational AST
- One-to-many, many-to-one and many-to-many relation traversal
- Before/after hooks around save, delete and fetch
- A driver contract, with a psycopg-based PostgreSQL driver bundled
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from rowkeeper.config import Settings, get_settings
from rowkeeper.domain.fields import FieldDescriptor, FieldType, field_from_string
from rowkeeper.domain.records import Record
from rowkeeper.domain.schema import EntitySchema, Hooks, Relation, RelationKind
from rowkeeper.drivers.abstract import Aborted, Committed, DriverAdapter
from rowkeeper.drivers.postgres import PostgresDriver
from rowkeeper.entity import Entity, Registry
from rowkeeper.errors import (
    DeletedRecord,
    DeleteFailed,
    DriverError,
    InvalidValue,
    NotSaved,
    NullValueViolation,
    OrmError,
    ParseError,
    TooManyResults,
    TooManyRowsDeleted,
    UnexpectedNumUpdates,
    UnknownField,
)
from rowkeeper.query.ast import Call, Column, Cond, Limit, Not, OrderBy
from rowkeeper.query.builder import and_expr, append_extras, or_expr
from rowkeeper.serialize import DEFAULT, field_to_string, to_strings
from rowkeeper.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Schema and records
    "FieldDescriptor",
    "FieldType",
    "field_from_string",
    "Record",
    "EntitySchema",
    "Hooks",
    "Relation",
    "RelationKind",
    "Entity",
    "Registry",
    # Queries
    "Call",
    "Column",
    "Cond",
    "Limit",
    "Not",
    "OrderBy",
    "and_expr",
    "or_expr",
    "append_extras",
    # Drivers
    "DriverAdapter",
    "Committed",
    "Aborted",
    "PostgresDriver",
    # Rendering
    "DEFAULT",
    "field_to_string",
    "to_strings",
    # Errors
    "OrmError",
    "UnknownField",
    "NullValueViolation",
    "InvalidValue",
    "ParseError",
    "NotSaved",
    "DeletedRecord",
    "DeleteFailed",
    "TooManyRowsDeleted",
    "UnexpectedNumUpdates",
    "TooManyResults",
    "DriverError",
    # Logging
    "configure_logging",
    "get_logger",
]
