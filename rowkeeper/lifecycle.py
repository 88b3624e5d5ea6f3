"""
Record lifecycle: creation, field assignment, save and delete.

A record starts new (no id), becomes persisted exactly once when its insert
commits, may be updated any number of times, and is terminal once deleted.
Every write runs inside a single driver transaction; a failure anywhere in the
transaction body rolls it back and the error is re-raised to the caller
unchanged.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, TypeVar, Union

from rowkeeper.domain.fields import FieldDescriptor, field_from_string
from rowkeeper.domain.records import Record
from rowkeeper.domain.schema import ID_FIELD, EntitySchema
from rowkeeper.drivers.abstract import Aborted, DriverAdapter, Options, TransactionResult
from rowkeeper.errors import (
    DeletedRecord,
    DeleteFailed,
    DriverError,
    NotSaved,
    TooManyRowsDeleted,
    UnexpectedNumUpdates,
)
from rowkeeper.query.ast import Cond
from rowkeeper.query.builder import (
    WhereInput,
    build_delete,
    build_delete_record,
    build_insert,
    build_update,
)
from rowkeeper.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

Assignments = Union[Mapping[Any, Any], Iterable[Tuple[Any, Any]]]
Converter = Callable[[FieldDescriptor, Any], Any]


def driver_for(schema: EntitySchema) -> Tuple[DriverAdapter, Options]:
    if schema.driver is None:
        raise RuntimeError(f"entity {schema.name!r} is not bound to a driver")
    return schema.driver, schema.driver_options


def transaction(schema: EntitySchema, body: Callable[[], T]) -> TransactionResult:
    """Run ``body`` in a transaction on the schema's driver; returns the raw outcome."""
    driver, options = driver_for(schema)
    return driver.transaction(body, options)


def run_transaction(schema: EntitySchema, body: Callable[[], T]) -> T:
    """Run ``body`` in a transaction and return its value or raise its error."""
    result = transaction(schema, body)
    if isinstance(result, Aborted):
        error = result.error
        if isinstance(error, BaseException):
            raise error
        raise DriverError(f"transaction aborted: {error!r}")
    return result.value


def check_owner(schema: EntitySchema, record: Record) -> None:
    if record.entity != schema.name:
        raise ValueError(f"{record.entity} record passed to {schema.name} operation")


def require_saved(*records: Record) -> None:
    for record in records:
        if record.deleted:
            raise DeletedRecord(record)
        if record.is_new:
            raise NotSaved(record)


def is_new(record: Record) -> bool:
    return record.is_new


def new(schema: EntitySchema) -> Record:
    """A new record with every field absent."""
    return schema.new_record()


def new_with(
    schema: EntitySchema, assignments: Assignments, converter: Optional[Converter] = None
) -> Record:
    return set_fields(schema, new(schema), assignments, converter)


def new_from_strings(schema: EntitySchema, assignments: Assignments) -> Record:
    return set_fields(schema, new(schema), assignments, field_from_string)


def get_field(schema: EntitySchema, record: Record, name: Any) -> Any:
    return schema.accessor(name).get(record)


def set_field(schema: EntitySchema, record: Record, name: Any, value: Any) -> Record:
    return schema.accessor(name).set(record, value)


def _items(assignments: Assignments) -> Iterable[Tuple[Any, Any]]:
    if isinstance(assignments, Mapping):
        return assignments.items()
    return assignments


def set_fields(
    schema: EntitySchema,
    record: Record,
    assignments: Assignments,
    converter: Optional[Converter] = None,
) -> Record:
    """
    Assign several fields, optionally converting each value first.

    Parameters
    ----------
    assignments : mapping or iterable of pairs
        Field name to value. Unknown names raise UnknownField.
    converter : callable, optional
        ``converter(descriptor, value)`` applied before each assignment.
    """
    check_owner(schema, record)
    for name, value in _items(assignments):
        accessor = schema.accessor(name)
        if converter is not None:
            value = converter(accessor.field, value)
        record = accessor.set(record, value)
    return record


def set_fields_from_strings(
    schema: EntitySchema, record: Record, assignments: Assignments
) -> Record:
    return set_fields(schema, record, assignments, field_from_string)


def save(schema: EntitySchema, record: Record) -> Any:
    """
    Insert or update ``record`` through the before_save/after_save pipeline.

    Returns whatever after_save returns; by default the saved record, which for
    an insert carries the generated id and ``is_new=False``.
    """
    check_owner(schema, record)
    if record.deleted:
        raise DeletedRecord(record)
    hooks = schema.hooks
    record = hooks.before_save(record)
    return hooks.after_save(_do_save(schema, record))


def _do_save(schema: EntitySchema, record: Record) -> Record:
    driver, options = driver_for(schema)

    if record.is_new:
        query = build_insert(schema, record)

        def insert() -> Record:
            count = driver.update(query, options)
            if count != 1:
                raise UnexpectedNumUpdates(count)
            return record.mark_saved(driver.get_last_insert_id(options))

        saved = run_transaction(schema, insert)
        log.debug("inserted %s %s", schema.name, saved.id, extra={"entity": schema.name})
        return saved

    if not schema.value_field_names:
        return record
    query = build_update(schema, record)

    def update() -> Record:
        count = driver.update(query, options)
        if count not in (0, 1):
            raise UnexpectedNumUpdates(count, expected="0 or 1")
        return record

    saved = run_transaction(schema, update)
    log.debug("updated %s %s", schema.name, saved.id, extra={"entity": schema.name})
    return saved


def delete(schema: EntitySchema, record: Record) -> Any:
    """
    Delete a persisted record through the before_delete/after_delete pipeline.

    By default returns the record marked deleted; passing that value to
    save() or delete() again raises DeletedRecord.
    """
    check_owner(schema, record)
    require_saved(record)
    hooks = schema.hooks
    record = hooks.before_delete(record)
    return hooks.after_delete(_do_delete(schema, record))


def _do_delete(schema: EntitySchema, record: Record) -> Record:
    require_saved(record)
    driver, options = driver_for(schema)
    query = build_delete_record(schema, record)

    def remove() -> Record:
        count = driver.update(query, options)
        if count == 1:
            return record.mark_deleted()
        if count == 0:
            raise DeleteFailed(record)
        raise TooManyRowsDeleted(count, record)

    deleted = run_transaction(schema, remove)
    log.debug("deleted %s %s", schema.name, record.id, extra={"entity": schema.name})
    return deleted


def delete_where(schema: EntitySchema, where: WhereInput = None) -> int:
    """Delete every row of the entity matching ``where``; returns the count."""
    driver, options = driver_for(schema)
    query = build_delete(schema, where)
    count = run_transaction(schema, lambda: driver.update(query, options))
    log.debug("deleted %d %s rows", count, schema.name, extra={"entity": schema.name})
    return count


def delete_id(schema: EntitySchema, record_id: Any) -> int:
    return delete_where(schema, Cond(ID_FIELD, "=", record_id))


def delete_all(schema: EntitySchema) -> int:
    return delete_where(schema, None)


__all__ = [
    "driver_for",
    "transaction",
    "run_transaction",
    "check_owner",
    "require_saved",
    "is_new",
    "new",
    "new_with",
    "new_from_strings",
    "get_field",
    "set_field",
    "set_fields",
    "set_fields_from_strings",
    "save",
    "delete",
    "delete_where",
    "delete_id",
    "delete_all",
]
