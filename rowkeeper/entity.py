"""
Registry of entity schemas and the per-entity bound API.

Register every schema, then call `Registry.freeze()` once to resolve the
relations between them. After that the registry is read-only and safe to share
between threads; records are immutable values, so no locking is needed.

Example
-------
    registry = Registry(driver=PostgresDriver())
    person = registry.register(
        EntitySchema("person", [("name", "binary"), ("age", "integer")])
    )
    registry.freeze()

    joe = person.save(person.new_from_strings({"name": "Joe", "age": "30"}))
    person.get(joe, "age")  # 30
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, TypeVar

from rowkeeper import finders, lifecycle, relations, serialize
from rowkeeper.domain.fields import FieldDescriptor
from rowkeeper.domain.records import Record
from rowkeeper.domain.schema import EntitySchema, RelationKind, ResolvedRelation
from rowkeeper.drivers.abstract import DriverAdapter, TransactionResult
from rowkeeper.query.ast import Extras
from rowkeeper.query.builder import WhereInput

T = TypeVar("T")


class Entity:
    """
    Operations bound to one entity schema.
    """

    def __init__(self, schema: EntitySchema) -> None:
        self.schema = schema

    def __repr__(self) -> str:
        return f"Entity({self.schema.name!r})"

    @property
    def name(self) -> str:
        return self.schema.name

    # fields

    def field(self, name: Any) -> FieldDescriptor:
        return self.schema.field(name)

    def get(self, record: Record, name: Any) -> Any:
        lifecycle.check_owner(self.schema, record)
        return lifecycle.get_field(self.schema, record, name)

    def set(self, record: Record, name: Any, value: Any) -> Record:
        lifecycle.check_owner(self.schema, record)
        return lifecycle.set_field(self.schema, record, name, value)

    def as_dict(self, record: Record) -> Dict[str, Any]:
        return self.schema.as_dict(record)

    # creation

    def new(self) -> Record:
        return lifecycle.new(self.schema)

    def new_with(
        self, assignments: lifecycle.Assignments, converter: Optional[lifecycle.Converter] = None
    ) -> Record:
        return lifecycle.new_with(self.schema, assignments, converter)

    def new_from_strings(self, assignments: lifecycle.Assignments) -> Record:
        return lifecycle.new_from_strings(self.schema, assignments)

    def set_fields(
        self,
        record: Record,
        assignments: lifecycle.Assignments,
        converter: Optional[lifecycle.Converter] = None,
    ) -> Record:
        return lifecycle.set_fields(self.schema, record, assignments, converter)

    def set_fields_from_strings(self, record: Record, assignments: lifecycle.Assignments) -> Record:
        return lifecycle.set_fields_from_strings(self.schema, record, assignments)

    # persistence

    def save(self, record: Record) -> Any:
        return lifecycle.save(self.schema, record)

    def delete(self, record: Record) -> Any:
        return lifecycle.delete(self.schema, record)

    def delete_where(self, where: WhereInput = None) -> int:
        return lifecycle.delete_where(self.schema, where)

    def delete_id(self, record_id: Any) -> int:
        return lifecycle.delete_id(self.schema, record_id)

    def delete_all(self) -> int:
        return lifecycle.delete_all(self.schema)

    def transaction(self, body: Callable[[], T]) -> TransactionResult:
        return lifecycle.transaction(self.schema, body)

    # finders

    def find(self, where: WhereInput = None, extras: Extras = None) -> List[Record]:
        return finders.find(self.schema, where, extras)

    def find_first(self, where: WhereInput = None, extras: Extras = None) -> Optional[Record]:
        return finders.find_first(self.schema, where, extras)

    def find_max(self, max_rows: int, where: WhereInput = None, extras: Extras = None) -> List[Record]:
        return finders.find_max(self.schema, max_rows, where, extras)

    def find_range(
        self, first: int, max_rows: int, where: WhereInput = None, extras: Extras = None
    ) -> List[Record]:
        return finders.find_range(self.schema, first, max_rows, where, extras)

    def find_id(self, record_id: Any) -> Optional[Record]:
        return finders.find_id(self.schema, record_id)

    def aggregate(
        self, func: str, field: Any = "*", where: WhereInput = None, extras: Extras = None
    ) -> Any:
        return finders.aggregate(self.schema, func, field, where, extras)

    def count(self, where: WhereInput = None) -> int:
        return finders.count(self.schema, where)

    # relations

    def relation(self, name: str) -> ResolvedRelation:
        return self.schema.relation(name)

    def find_related(
        self, name: str, record: Record, where: WhereInput = None, extras: Extras = None
    ) -> Any:
        """
        Follow relation ``name`` from ``record``: a single record for a
        one-to-many relation, a list otherwise.
        """
        lifecycle.check_owner(self.schema, record)
        return self.relation(name).find(record, where, extras)

    def find_related_first(
        self, name: str, record: Record, where: WhereInput = None, extras: Extras = None
    ) -> Optional[Record]:
        return relations.find_related_many_first(self.relation(name), record, where, extras)

    def find_related_max(
        self,
        name: str,
        record: Record,
        max_rows: int,
        where: WhereInput = None,
        extras: Extras = None,
    ) -> List[Record]:
        return relations.find_related_many_max(self.relation(name), record, max_rows, where, extras)

    def find_related_range(
        self,
        name: str,
        record: Record,
        first: int,
        max_rows: int,
        where: WhereInput = None,
        extras: Extras = None,
    ) -> List[Record]:
        return relations.find_related_many_range(
            self.relation(name), record, first, max_rows, where, extras
        )

    def aggregate_related(
        self,
        name: str,
        func: str,
        record: Record,
        field: Any = "*",
        where: WhereInput = None,
        extras: Extras = None,
    ) -> Any:
        return relations.aggregate_related_many(
            self.relation(name), func, record, field, where, extras
        )

    def set_related(self, name: str, record: Record, other: Record) -> Record:
        relation = self._relation_of(name, RelationKind.ONE_TO_MANY)
        return relation.set(record, other)

    def add_related(self, name: str, record: Record, other: Record) -> None:
        self._relation_of(name, RelationKind.MANY_TO_MANY).add(record, other)

    def remove_related(self, name: str, record: Record, other: Record) -> None:
        self._relation_of(name, RelationKind.MANY_TO_MANY).remove(record, other)

    def _relation_of(self, name: str, kind: RelationKind) -> ResolvedRelation:
        relation = self.relation(name)
        if relation.kind is not kind:
            raise ValueError(f"relation {name!r} is {relation.kind.value}, not {kind.value}")
        return relation

    # rendering

    def to_strings(
        self, records: Any, converter: Optional[serialize.Converter] = None
    ) -> Any:
        return serialize.to_strings(self.schema, records, converter)


class Registry:
    """
    Holds the entity schemas of an application.

    Parameters
    ----------
    driver : DriverAdapter, optional
        Default driver for schemas registered without one.
    driver_options : mapping, optional
        Default options passed to every driver call.
    """

    def __init__(
        self,
        driver: Optional[DriverAdapter] = None,
        driver_options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.driver = driver
        self.driver_options = dict(driver_options or {})
        self._entities: Dict[str, Entity] = {}
        self._frozen = False

    def register(self, schema: EntitySchema) -> Entity:
        if self._frozen:
            raise RuntimeError("registry is frozen; register entities before freeze()")
        if schema.name in self._entities:
            raise ValueError(f"entity {schema.name!r} is already registered")
        if schema.driver is None:
            schema.driver = self.driver
            schema.driver_options = {**self.driver_options, **schema.driver_options}
        entity = Entity(schema)
        self._entities[schema.name] = entity
        return entity

    def freeze(self) -> "Registry":
        """Resolve relations between registered schemas; no registration afterwards."""
        if not self._frozen:
            relations.resolve_relations({name: e.schema for name, e in self._entities.items()})
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def entity(self, name: str) -> Entity:
        try:
            return self._entities[name]
        except KeyError:
            raise KeyError(f"no entity named {name!r}") from None

    def entity_for(self, record: Record) -> Entity:
        return self.entity(record.entity)

    def __getitem__(self, name: str) -> Entity:
        return self.entity(name)

    def __contains__(self, name: object) -> bool:
        return name in self._entities

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)


__all__ = ["Entity", "Registry"]
