"""
Select paths: finders and aggregates.

Every record-returning select goes through `select`, which hydrates rows via
the driver and runs the schema's after_fetch hook once per record.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from rowkeeper.domain.records import Record
from rowkeeper.domain.schema import ID_FIELD, EntitySchema
from rowkeeper.errors import TooManyResults
from rowkeeper.lifecycle import driver_for
from rowkeeper.query.ast import Cond, Extras, Limit, Select
from rowkeeper.query.builder import (
    WhereInput,
    append_extras,
    build_aggregate,
    build_find,
)


def select(schema: EntitySchema, query: Select, as_records: bool = True) -> Any:
    """
    Run ``query`` for ``schema``.

    With ``as_records`` the rows are hydrated into records and passed through
    after_fetch; otherwise the query must yield at most one single-column row,
    whose value is returned (``None`` for no rows).
    """
    driver, options = driver_for(schema)
    if as_records:
        after_fetch = schema.hooks.after_fetch
        return [after_fetch(record) for record in driver.select_as(schema, query, options)]
    return as_single_val(driver.select(query, options), scalar=True)


def as_single_val(rows: Sequence[Any], scalar: bool = False) -> Any:
    if not rows:
        return None
    if len(rows) == 1:
        return rows[0][0] if scalar else rows[0]
    raise TooManyResults(rows)


def find(schema: EntitySchema, where: WhereInput = None, extras: Extras = None) -> List[Record]:
    return select(schema, build_find(schema, where, extras))


def find_first(
    schema: EntitySchema, where: WhereInput = None, extras: Extras = None
) -> Optional[Record]:
    return as_single_val(find_max(schema, 1, where, extras))


def find_max(
    schema: EntitySchema, max_rows: int, where: WhereInput = None, extras: Extras = None
) -> List[Record]:
    return find(schema, where, append_extras(Limit(max_rows), extras))


def find_range(
    schema: EntitySchema,
    first: int,
    max_rows: int,
    where: WhereInput = None,
    extras: Extras = None,
) -> List[Record]:
    """Up to ``max_rows`` records starting at offset ``first``."""
    return find(schema, where, append_extras(Limit(max_rows, offset=first), extras))


def find_id(schema: EntitySchema, record_id: Any) -> Optional[Record]:
    return as_single_val(find(schema, Cond(ID_FIELD, "=", record_id)))


def aggregate(
    schema: EntitySchema,
    func: str,
    field: Any = "*",
    where: WhereInput = None,
    extras: Extras = None,
) -> Any:
    """Apply count/sum/min/max/avg to ``field`` over the matching rows."""
    return select(schema, build_aggregate(schema, func, field, where, extras), as_records=False)


def count(schema: EntitySchema, where: WhereInput = None) -> int:
    return aggregate(schema, "count", "*", where)


__all__ = [
    "select",
    "as_single_val",
    "find",
    "find_first",
    "find_max",
    "find_range",
    "find_id",
    "aggregate",
    "count",
]
