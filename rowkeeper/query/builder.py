"""
Pure query construction from entity schemas.

Nothing here touches a database. Functions take an `EntitySchema`, a where
expression and extras and return AST values from `rowkeeper.query.ast`.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple, Union

from rowkeeper.domain.records import Record
from rowkeeper.domain.schema import ALL_FIELDS, ID_FIELD, EntitySchema
from rowkeeper.query.ast import (
    AND,
    OR,
    BoolExpr,
    Call,
    Column,
    Cond,
    Delete,
    Expr,
    Extra,
    Extras,
    Insert,
    Limit,
    Not,
    OrderBy,
    Select,
    SelectFields,
    Update,
)

WhereInput = Union[None, Expr, Tuple[Any, ...]]


def as_expr(value: WhereInput) -> Optional[Expr]:
    """
    Normalize tuple shorthand into AST nodes.

    ``("age", ">", 26)`` becomes ``Cond("age", ">", 26)`` and
    ``(lhs, "and", rhs)`` becomes ``BoolExpr(lhs, "and", rhs)`` when both
    sides are expressions themselves. ``("not", expr)`` becomes ``Not(expr)``.
    """
    if value is None or isinstance(value, (Cond, BoolExpr, Not)):
        return value
    if isinstance(value, tuple):
        if len(value) == 2 and value[0] == "not":
            return Not(as_expr(value[1]))
        if len(value) == 3:
            left, op, right = value
            if op in (AND, OR) and _is_expr_like(left) and _is_expr_like(right):
                return BoolExpr(as_expr(left), op, as_expr(right))
            return Cond(left, op, right)
    raise ValueError(f"not a where expression: {value!r}")


def _is_expr_like(value: Any) -> bool:
    return isinstance(value, (Cond, BoolExpr, Not, tuple))


def and_expr(left: WhereInput, right: WhereInput) -> Optional[Expr]:
    """Conjoin two expressions; a missing side is the identity."""
    left, right = as_expr(left), as_expr(right)
    if left is None:
        return right
    if right is None:
        return left
    return BoolExpr(left, AND, right)


def or_expr(left: WhereInput, right: WhereInput) -> Optional[Expr]:
    left, right = as_expr(left), as_expr(right)
    if left is None:
        return right
    if right is None:
        return left
    return BoolExpr(left, OR, right)


def append_extras(clause: Extra, extras: Extras) -> Union[Extra, List[Extra]]:
    """
    Add ``clause`` to the caller's extras, keeping the caller's order first.

    No extras yields ``clause`` itself; a sequence gets ``clause`` appended; a
    lone extra is paired with ``clause`` in a new list.
    """
    if extras is None:
        return clause
    if isinstance(extras, (list, tuple)):
        return [*extras, clause]
    return [extras, clause]


def normalize_extras(extras: Extras) -> Tuple[Extra, ...]:
    if extras is None:
        return ()
    if isinstance(extras, (Limit, OrderBy)):
        return (extras,)
    items = tuple(extras)
    for item in items:
        if not isinstance(item, (Limit, OrderBy)):
            raise ValueError(f"unsupported query extra: {item!r}")
    return items


def discriminator_expr(schema: EntitySchema) -> Optional[Cond]:
    if schema.type_field is None:
        return None
    return Cond(Column(schema.table, schema.type_field), "=", schema.name)


def make_where_expr(
    schema: EntitySchema, expr1: WhereInput = None, expr2: WhereInput = None
) -> Optional[Expr]:
    """
    Combine two where expressions and, when the schema declares a
    discriminator column, restrict the result to the schema's entity type.
    """
    combined = and_expr(expr1, expr2)
    return and_expr(discriminator_expr(schema), combined)


def field_names_for_query(schema: EntitySchema, use_star: bool = False) -> SelectFields:
    if not schema.explicit_fields and schema.type_field is None and use_star:
        return ALL_FIELDS
    return list(schema.db_field_names)


def id_field_for(entity: Union[EntitySchema, Record, str]) -> str:
    """Foreign key column naming convention: ``<entity>_id``."""
    if isinstance(entity, EntitySchema):
        name = entity.name
    elif isinstance(entity, Record):
        name = entity.entity
    else:
        name = entity
    return f"{name}_{ID_FIELD}"


def make_id_expr(record: Record, where: WhereInput = None) -> Optional[Expr]:
    return and_expr(Cond(id_field_for(record), "=", record.id), where)


def build_select(
    schema: EntitySchema,
    fields: SelectFields,
    where: WhereInput = None,
    extras: Extras = None,
) -> Select:
    if isinstance(fields, (list, tuple)):
        fields = tuple(fields)
    return Select(
        fields=fields,
        tables=(schema.table,),
        where=make_where_expr(schema, where),
        extras=normalize_extras(extras),
    )


def build_find(schema: EntitySchema, where: WhereInput = None, extras: Extras = None) -> Select:
    return build_select(schema, field_names_for_query(schema, use_star=True), where, extras)


def build_aggregate(
    schema: EntitySchema,
    func: str,
    field: Any,
    where: WhereInput = None,
    extras: Extras = None,
) -> Select:
    return build_select(schema, Call(func, field), where, extras)


def build_insert(schema: EntitySchema, record: Record) -> Insert:
    fields: Sequence[str] = schema.value_field_names
    values: Sequence[Any] = record.values
    if schema.type_field is not None:
        fields = (schema.type_field, *fields)
        values = (schema.name, *values)
    return Insert(table=schema.table, fields=tuple(fields), rows=(tuple(values),))


def build_update(schema: EntitySchema, record: Record) -> Update:
    return Update(
        table=schema.table,
        assignments=tuple(zip(schema.value_field_names, record.values)),
        where=Cond(ID_FIELD, "=", record.id),
    )


def build_delete(schema: EntitySchema, where: WhereInput = None) -> Delete:
    return Delete(table=schema.table, where=make_where_expr(schema, where))


def build_delete_record(schema: EntitySchema, record: Record) -> Delete:
    return Delete(table=schema.table, where=Cond(ID_FIELD, "=", record.id))


def build_related_many_to_many(
    other: EntitySchema,
    join_table: str,
    record: Record,
    fields: SelectFields,
    where: WhereInput = None,
    extras: Extras = None,
) -> Select:
    """
    Select ``other`` rows linked to ``record`` through ``join_table``.
    """
    join_cond = and_expr(
        Cond(Column(other.table, ID_FIELD), "=", Column(join_table, id_field_for(other))),
        Cond(Column(join_table, id_field_for(record)), "=", record.id),
    )
    if isinstance(fields, (list, tuple)):
        fields = tuple(fields)
    return Select(
        fields=fields,
        tables=(other.table, join_table),
        where=make_where_expr(other, join_cond, where),
        extras=normalize_extras(extras),
    )


def build_link(join_table: str, record: Record, other: Record) -> Insert:
    return Insert(
        table=join_table,
        fields=(id_field_for(record), id_field_for(other)),
        rows=((record.id, other.id),),
    )


def build_unlink(join_table: str, record: Record, other: Record) -> Delete:
    return Delete(
        table=join_table,
        where=and_expr(
            Cond(id_field_for(record), "=", record.id),
            Cond(id_field_for(other), "=", other.id),
        ),
    )


__all__ = [
    "as_expr",
    "and_expr",
    "or_expr",
    "append_extras",
    "normalize_extras",
    "discriminator_expr",
    "make_where_expr",
    "field_names_for_query",
    "id_field_for",
    "make_id_expr",
    "build_select",
    "build_find",
    "build_aggregate",
    "build_insert",
    "build_update",
    "build_delete",
    "build_delete_record",
    "build_related_many_to_many",
    "build_link",
    "build_unlink",
]
