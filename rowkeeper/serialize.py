"""
Render records as display-ready strings.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Callable, List, Optional, Sequence, Union

from rowkeeper.domain.fields import FieldDescriptor
from rowkeeper.domain.records import Record
from rowkeeper.domain.schema import EntitySchema

# Returned by a custom converter to fall back to field_to_string.
DEFAULT = object()

Rendered = Union[str, bytes]
Converter = Callable[[Any, FieldDescriptor], Any]


def field_to_string(value: Any, field: Optional[FieldDescriptor] = None) -> Rendered:
    if isinstance(value, (str, bytes)):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return repr(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    # datetime is a date subclass, check it first
    if isinstance(value, dt.datetime):
        return f"{_date(value)} {_time(value)}"
    if isinstance(value, dt.date):
        return _date(value)
    if isinstance(value, dt.time):
        return _time(value)
    return repr(value)


def _date(value: dt.date) -> str:
    return f"{value.month:02d}/{value.day:02d}/{value.year:04d}"


def _time(value: Union[dt.time, dt.datetime]) -> str:
    return f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"


def to_strings(
    schema: EntitySchema,
    records: Union[Record, Sequence[Record]],
    converter: Optional[Converter] = None,
) -> Union[List[Rendered], List[List[Rendered]]]:
    """
    Render one record, or each of a list of records, field by field.

    Fields are emitted in the schema's declaration order (``id`` first).
    ``converter(value, field)`` may return `DEFAULT` to use `field_to_string`.
    """
    if isinstance(records, Record):
        return _render(schema, records, converter)
    return [_render(schema, record, converter) for record in records]


def _render(
    schema: EntitySchema, record: Record, converter: Optional[Converter]
) -> List[Rendered]:
    rendered: List[Rendered] = []
    for field in reversed(schema.db_fields):
        value = schema.accessors[field.name].get(record)
        result = DEFAULT if converter is None else converter(value, field)
        if result is DEFAULT:
            result = field_to_string(value, field)
        rendered.insert(0, result)
    return rendered


__all__ = ["DEFAULT", "field_to_string", "to_strings"]
