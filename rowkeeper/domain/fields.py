"""
Field descriptors: metadata for one database column.

A descriptor knows the column name, the Python-side type it maps to and whether
the column accepts NULL. It also owns the strict string parsing used when
records are built from form input (`field_from_string`).
"""

from __future__ import annotations

import datetime as dt
import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from rowkeeper.errors import InvalidValue, NullValueViolation, ParseError


class FieldType(str, Enum):
    BINARY = "binary"
    INTEGER = "integer"
    FLOAT = "float"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"


class FieldDescriptor(BaseModel):
    """
    Description of a single column exposed by an entity.
    """

    name: str = Field(..., description="Column name.")
    type: FieldType = Field(FieldType.BINARY, description="Declared value type.")
    nullable: bool = Field(True, description="Whether the column accepts NULL.")

    model_config = {
        "frozen": True,
        "use_enum_values": False,
    }


_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_DATE_RE = re.compile(r"(\d+)/(\d+)/(\d+)", re.ASCII)
_TIME_RE = re.compile(r"(\d+):(\d+):(\d+)", re.ASCII)
_DATETIME_RE = re.compile(r"(\d+)/(\d+)/(\d+)\s+(\d+):(\d+):(\d+)", re.ASCII)


def _match(pattern: re.Pattern[str], field_type: FieldType, text: str) -> re.Match[str]:
    match = pattern.fullmatch(text)
    if match is None:
        raise ParseError(field_type.value, text)
    return match


def _check_limits(value: int, component: str, low: int, high: int) -> int:
    if value < low or value > high:
        raise InvalidValue(component, value)
    return value


def make_date(year: int, month: int, day: int) -> dt.date:
    _check_limits(month, "month", 1, 12)
    _check_limits(day, "day", 1, 31)
    _check_limits(year, "year", 1, 9999)
    try:
        return dt.date(year, month, day)
    except ValueError:
        # e.g. February 30th passes the component limits
        raise InvalidValue("day", day) from None


def make_time(hour: int, minute: int, second: int) -> dt.time:
    _check_limits(hour, "hour", 0, 23)
    _check_limits(minute, "minute", 0, 59)
    _check_limits(second, "second", 0, 59)
    return dt.time(hour, minute, second)


def field_from_string(field: FieldDescriptor, text: Optional[str]) -> Any:
    """
    Convert a string into a value of the field's declared type.

    Parameters
    ----------
    field : FieldDescriptor
        Descriptor of the target column.
    text : str or None
        Raw string value. ``None`` is accepted only for nullable fields.

    Returns
    -------
    Any
        ``str`` for binary fields (kept as given), ``int``, ``float``,
        ``datetime.date`` (``MM/DD/YYYY``), ``datetime.time`` (``HH:MM:SS``)
        or ``datetime.datetime`` (``MM/DD/YYYY HH:MM:SS``).

    Raises
    ------
    NullValueViolation
        ``text`` is None and the field is not nullable.
    ParseError
        ``text`` does not match the format of the declared type.
    InvalidValue
        A date/time component is out of range.
    """
    if text is None:
        if field.nullable:
            return None
        raise NullValueViolation(field.name)

    field_type = field.type
    if field_type is FieldType.BINARY:
        return text
    if field_type is FieldType.INTEGER:
        return int(_match(_INT_RE, field_type, text).group(0))
    if field_type is FieldType.FLOAT:
        return float(_match(_FLOAT_RE, field_type, text).group(0))
    if field_type is FieldType.DATE:
        month, day, year = (int(part) for part in _match(_DATE_RE, field_type, text).groups())
        return make_date(year, month, day)
    if field_type is FieldType.TIME:
        hour, minute, second = (int(part) for part in _match(_TIME_RE, field_type, text).groups())
        return make_time(hour, minute, second)
    if field_type is FieldType.DATETIME:
        month, day, year, hour, minute, second = (
            int(part) for part in _match(_DATETIME_RE, field_type, text).groups()
        )
        date = make_date(year, month, day)
        time = make_time(hour, minute, second)
        return dt.datetime.combine(date, time)
    raise ParseError(str(field_type), text, reason="unsupported type")  # pragma: no cover


__all__ = [
    "FieldType",
    "FieldDescriptor",
    "field_from_string",
    "make_date",
    "make_time",
]
