"""
Error types raised by the rowkeeper core.

Every violated invariant aborts the current call with one of these. Nothing in
the core retries or recovers; callers decide what to show the user.
"""

from __future__ import annotations

from typing import Any, Optional


class OrmError(Exception):
    """Base class for all rowkeeper errors."""


class UnknownField(OrmError, KeyError):
    def __init__(self, entity: str, field: Any) -> None:
        super().__init__(f"{entity} has no field named {field!r}")
        self.entity = entity
        self.field = field

    def __str__(self) -> str:
        return self.args[0]


class NullValueViolation(OrmError, ValueError):
    def __init__(self, field: str) -> None:
        super().__init__(f"field {field!r} is not nullable")
        self.field = field


class InvalidValue(OrmError, ValueError):
    """A parsed date/time component is outside its valid range."""

    def __init__(self, component: str, value: Any) -> None:
        super().__init__(f"invalid {component}: {value!r}")
        self.component = component
        self.value = value


class ParseError(OrmError, ValueError):
    """A string does not match the lexical format of its declared type."""

    def __init__(self, field_type: str, text: Any, reason: str = "parse_error") -> None:
        super().__init__(f"cannot parse {text!r} as {field_type} ({reason})")
        self.field_type = field_type
        self.text = text
        self.reason = reason


class NotSaved(OrmError):
    """An operation that needs a persisted record was given a new one."""

    def __init__(self, record: Any, message: Optional[str] = None) -> None:
        super().__init__(message or f"record has not been saved: {record!r}")
        self.record = record


class DeletedRecord(NotSaved):
    def __init__(self, record: Any) -> None:
        super().__init__(record, f"record was deleted and cannot be reused: {record!r}")


class DeleteFailed(OrmError):
    def __init__(self, record: Any) -> None:
        super().__init__(f"no row deleted for {record!r}")
        self.record = record


class TooManyRowsDeleted(OrmError):
    def __init__(self, count: int, record: Any) -> None:
        super().__init__(f"{count} rows deleted for {record!r}")
        self.count = count
        self.record = record


class UnexpectedNumUpdates(OrmError):
    def __init__(self, count: Any, expected: str = "1") -> None:
        super().__init__(f"expected {expected} affected row(s), got {count!r}")
        self.count = count
        self.expected = expected


class TooManyResults(OrmError):
    def __init__(self, rows: Any) -> None:
        count = len(rows) if hasattr(rows, "__len__") else rows
        super().__init__(f"expected at most one result, got {count}")
        self.rows = rows
        self.count = count


class DriverError(OrmError):
    """Opaque failure reported by a database driver (connection, SQL, constraint)."""


__all__ = [
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
]
