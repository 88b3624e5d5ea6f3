"""
Relationship traversal and mutation across entity schemas.

Three cardinalities are supported:

- one-to-many, seen from the record holding the ``<other>_id`` column: a
  single related record (`find_related_one_to_many`, `set_related_one_to_many`);
- many-to-one, the reverse direction: every record of the other entity whose
  ``<this>_id`` points at this record (`find_related_many_to_one`);
- many-to-many through a join table holding both foreign keys.

`resolve_relations` turns each schema's relation declarations into
`ResolvedRelation` descriptors on both endpoints, so the generic
``find_related_many_*`` helpers dispatch through stored callables.
"""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from rowkeeper.domain.records import Record
from rowkeeper.domain.schema import ID_FIELD, EntitySchema, RelationKind, ResolvedRelation
from rowkeeper.errors import UnexpectedNumUpdates
from rowkeeper.finders import as_single_val, find, aggregate, select
from rowkeeper.lifecycle import driver_for, get_field, require_saved, run_transaction, set_field
from rowkeeper.query.ast import Call, Column, Cond, Extras, Limit
from rowkeeper.query.builder import (
    WhereInput,
    and_expr,
    append_extras,
    build_link,
    build_related_many_to_many,
    build_unlink,
    field_names_for_query,
    id_field_for,
    make_id_expr,
)
from rowkeeper.utils.logging import get_logger

log = get_logger(__name__)


def default_join_table(first: str, second: str) -> str:
    return "_".join(sorted((first, second)))


def as_single_update(count: int) -> None:
    if count != 1:
        raise UnexpectedNumUpdates(count)


# one-to-many


def find_related_one_to_many(
    other: EntitySchema,
    schema: EntitySchema,
    record: Record,
    where: WhereInput = None,
    extras: Extras = None,
) -> Optional[Record]:
    """
    The ``other`` record referenced by ``record``'s ``<other>_id`` field, or
    None when the field is unset or the record fails ``where``.
    """
    foreign_id = get_field(schema, record, id_field_for(other))
    if foreign_id is None:
        return None
    return as_single_val(find(other, and_expr(Cond(ID_FIELD, "=", foreign_id), where), extras))


def set_related_one_to_many(schema: EntitySchema, record: Record, other: Record) -> Record:
    """Point ``record``'s ``<other>_id`` field at the persisted ``other``."""
    require_saved(other)
    return set_field(schema, record, id_field_for(other), other.id)


# many-to-one


def find_related_many_to_one(
    other: EntitySchema, record: Record, where: WhereInput = None, extras: Extras = None
) -> List[Record]:
    require_saved(record)
    return find(other, make_id_expr(record, where), extras)


def aggregate_related_many_to_one(
    other: EntitySchema,
    func: str,
    record: Record,
    field: Any = "*",
    where: WhereInput = None,
    extras: Extras = None,
) -> Any:
    require_saved(record)
    return aggregate(other, func, field, make_id_expr(record, where), extras)


# many-to-many


def add_related_many_to_many(
    schema: EntitySchema, join_table: str, record: Record, other: Record
) -> None:
    """Insert the join row linking ``record`` and ``other``."""
    require_saved(record, other)
    driver, options = driver_for(schema)
    query = build_link(join_table, record, other)
    run_transaction(schema, lambda: as_single_update(driver.update(query, options)))
    log.debug("linked %s %s -> %s %s", record.entity, record.id, other.entity, other.id)


def remove_related_many_to_many(
    schema: EntitySchema, join_table: str, record: Record, other: Record
) -> None:
    """Delete the join row linking ``record`` and ``other``."""
    require_saved(record, other)
    driver, options = driver_for(schema)
    query = build_unlink(join_table, record, other)
    run_transaction(schema, lambda: as_single_update(driver.update(query, options)))
    log.debug("unlinked %s %s -> %s %s", record.entity, record.id, other.entity, other.id)


def find_related_many_to_many(
    other: EntitySchema,
    join_table: str,
    record: Record,
    where: WhereInput = None,
    extras: Extras = None,
) -> List[Record]:
    require_saved(record)
    fields = [Column(other.table, name) for name in field_names_for_query(other)]
    query = build_related_many_to_many(other, join_table, record, fields, where, extras)
    return select(other, query)


def aggregate_related_many_to_many(
    other: EntitySchema,
    join_table: str,
    func: str,
    record: Record,
    field: Any = "*",
    where: WhereInput = None,
    extras: Extras = None,
) -> Any:
    require_saved(record)
    if field != "*" and not isinstance(field, Column):
        field = Column(other.table, field)
    query = build_related_many_to_many(
        other, join_table, record, Call(func, field), where, extras
    )
    return select(other, query, as_records=False)


# generic helpers for collection relations


def _collection(relation: ResolvedRelation) -> ResolvedRelation:
    if relation.kind is RelationKind.ONE_TO_MANY:
        raise ValueError(f"relation {relation.name!r} resolves to a single record")
    return relation


def find_related_many(
    relation: ResolvedRelation, record: Record, where: WhereInput = None, extras: Extras = None
) -> List[Record]:
    return _collection(relation).find(record, where, extras)


def find_related_many_first(
    relation: ResolvedRelation, record: Record, where: WhereInput = None, extras: Extras = None
) -> Optional[Record]:
    return as_single_val(find_related_many_max(relation, record, 1, where, extras))


def find_related_many_max(
    relation: ResolvedRelation,
    record: Record,
    max_rows: int,
    where: WhereInput = None,
    extras: Extras = None,
) -> List[Record]:
    return find_related_many(relation, record, where, append_extras(Limit(max_rows), extras))


def find_related_many_range(
    relation: ResolvedRelation,
    record: Record,
    first: int,
    max_rows: int,
    where: WhereInput = None,
    extras: Extras = None,
) -> List[Record]:
    return find_related_many(
        relation, record, where, append_extras(Limit(max_rows, offset=first), extras)
    )


def aggregate_related_many(
    relation: ResolvedRelation,
    func: str,
    record: Record,
    field: Any = "*",
    where: WhereInput = None,
    extras: Extras = None,
) -> Any:
    return _collection(relation).aggregate(func, record, field, where, extras)


# resolution


def _many_to_one(owner: EntitySchema, other: EntitySchema) -> ResolvedRelation:
    def find_many(record: Record, where: WhereInput = None, extras: Extras = None) -> List[Record]:
        return find_related_many_to_one(other, record, where, extras)

    def aggregate_many(
        func: str, record: Record, field: Any = "*", where: WhereInput = None, extras: Extras = None
    ) -> Any:
        return aggregate_related_many_to_one(other, func, record, field, where, extras)

    return ResolvedRelation(
        name=other.name,
        kind=RelationKind.MANY_TO_ONE,
        owner=owner,
        other=other,
        join_table=None,
        find=find_many,
        aggregate=aggregate_many,
    )


def _one_to_many(owner: EntitySchema, other: EntitySchema) -> ResolvedRelation:
    foreign_key = id_field_for(other)
    if not owner.has_field(foreign_key):
        raise ValueError(
            f"{owner.name} must expose a {foreign_key!r} field to relate to {other.name}"
        )

    def find_one(record: Record, where: WhereInput = None, extras: Extras = None) -> Optional[Record]:
        return find_related_one_to_many(other, owner, record, where, extras)

    def set_one(record: Record, other_record: Record) -> Record:
        return set_related_one_to_many(owner, record, other_record)

    return ResolvedRelation(
        name=other.name,
        kind=RelationKind.ONE_TO_MANY,
        owner=owner,
        other=other,
        join_table=None,
        find=find_one,
        set=set_one,
    )


def _many_to_many(owner: EntitySchema, other: EntitySchema, join_table: str) -> ResolvedRelation:
    def find_many(record: Record, where: WhereInput = None, extras: Extras = None) -> List[Record]:
        return find_related_many_to_many(other, join_table, record, where, extras)

    def aggregate_many(
        func: str, record: Record, field: Any = "*", where: WhereInput = None, extras: Extras = None
    ) -> Any:
        return aggregate_related_many_to_many(
            other, join_table, func, record, field, where, extras
        )

    def add(record: Record, other_record: Record) -> None:
        add_related_many_to_many(owner, join_table, record, other_record)

    def remove(record: Record, other_record: Record) -> None:
        remove_related_many_to_many(owner, join_table, record, other_record)

    return ResolvedRelation(
        name=other.name,
        kind=RelationKind.MANY_TO_MANY,
        owner=owner,
        other=other,
        join_table=join_table,
        find=find_many,
        aggregate=aggregate_many,
        add=add,
        remove=remove,
    )


def _merge_declaration(
    pairs: Dict[FrozenSet[str], Tuple[RelationKind, str, Optional[str]]],
    schema: EntitySchema,
    kind: RelationKind,
    target: str,
    join_table: Optional[str],
) -> None:
    key = frozenset((schema.name, target))
    if key not in pairs:
        pairs[key] = (kind, schema.name, join_table)
        return
    known_kind, declared_by, known_table = pairs[key]
    if kind is not known_kind:
        raise ValueError(
            f"{schema.name} and {target} are declared as both {known_kind.value} and {kind.value}"
        )
    if kind is RelationKind.ONE_TO_MANY:
        if declared_by != schema.name:
            raise ValueError(f"{schema.name} and {target} each declare one_to_many to the other")
        return
    if known_table is not None and join_table is not None and known_table != join_table:
        raise ValueError(
            f"{schema.name} and {target} join through both {known_table!r} and {join_table!r}"
        )
    pairs[key] = (kind, declared_by, known_table or join_table)


def resolve_relations(schemas: Mapping[str, EntitySchema]) -> None:
    """
    Bind every declared relation to both endpoint schemas.

    ``A`` declaring ``("one_to_many", ["b"])`` gives ``A`` a many-to-one
    collection relation named ``"b"`` and ``b`` a one-to-many relation named
    ``A.name`` (which requires ``b`` to expose an ``<A>_id`` field).

    Either end may declare a relation, or both. Repeated declarations must
    agree; an explicit join table wins over the default one.
    """
    pairs: Dict[FrozenSet[str], Tuple[RelationKind, str, Optional[str]]] = {}
    for schema in schemas.values():
        for declaration in schema.declared_relations:
            for target in declaration.targets:
                if target not in schemas:
                    raise ValueError(f"{schema.name} relates to unknown entity {target!r}")
                _merge_declaration(pairs, schema, declaration.kind, target, declaration.join_table)

    resolved: Dict[str, Dict[str, ResolvedRelation]] = {name: {} for name in schemas}
    for key, (kind, declared_by, join_table) in pairs.items():
        schema = schemas[declared_by]
        other = schemas[next(iter(key - {declared_by}), declared_by)]
        if kind is RelationKind.ONE_TO_MANY:
            resolved[schema.name][other.name] = _many_to_one(schema, other)
            resolved[other.name][schema.name] = _one_to_many(other, schema)
        else:
            join_table = join_table or default_join_table(schema.name, other.name)
            resolved[schema.name][other.name] = _many_to_many(schema, other, join_table)
            resolved[other.name][schema.name] = _many_to_many(other, schema, join_table)
    for name, schema in schemas.items():
        schema.relations = resolved[name]


__all__ = [
    "default_join_table",
    "as_single_update",
    "find_related_one_to_many",
    "set_related_one_to_many",
    "find_related_many_to_one",
    "aggregate_related_many_to_one",
    "add_related_many_to_many",
    "remove_related_many_to_many",
    "find_related_many_to_many",
    "aggregate_related_many_to_many",
    "find_related_many",
    "find_related_many_first",
    "find_related_many_max",
    "find_related_many_range",
    "aggregate_related_many",
    "resolve_relations",
]
