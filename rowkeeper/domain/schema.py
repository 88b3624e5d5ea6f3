"""
Entity schema descriptors.

An `EntitySchema` is built once per entity type and captures everything the
core needs to know about it: table name, exposed fields, optional type
discriminator column, relation declarations, lifecycle hooks and the driver it
talks to. Defaults are resolved at construction; nothing is looked up per call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from rowkeeper.domain.fields import FieldDescriptor, FieldType
from rowkeeper.domain.records import Record
from rowkeeper.errors import UnknownField

if TYPE_CHECKING:  # pragma: no cover
    from rowkeeper.drivers.abstract import DriverAdapter

ALL_FIELDS = "*"
ID_FIELD = "id"

Hook = Callable[[Any], Any]


def _identity(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class Hooks:
    """
    Interception points around save, delete and fetch.

    Each hook receives the record and returns the (possibly replaced) value that
    flows to the next pipeline stage. Raising from a before_* hook aborts the
    operation.
    """

    before_save: Hook = _identity
    after_save: Hook = _identity
    before_delete: Hook = _identity
    after_delete: Hook = _identity
    after_fetch: Hook = _identity


class RelationKind(str, Enum):
    # this record holds `<other>_id` and resolves to a single record
    ONE_TO_MANY = "one_to_many"
    # the other entity holds `<this>_id`; resolves to a collection
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"


@dataclass(frozen=True)
class Relation:
    """Relation declaration as written on the owning schema."""

    kind: RelationKind
    targets: Tuple[str, ...]
    join_table: Optional[str] = None

    @classmethod
    def coerce(cls, value: Union["Relation", Sequence[Any]]) -> "Relation":
        if isinstance(value, Relation):
            return value
        kind, targets, *rest = value
        if isinstance(targets, str):
            targets = [targets]
        kind = RelationKind(kind)
        if kind is RelationKind.MANY_TO_ONE:
            raise ValueError("declare the one_to_many side; many_to_one is derived")
        return cls(kind=kind, targets=tuple(targets), join_table=rest[0] if rest else None)


@dataclass(frozen=True)
class ResolvedRelation:
    """
    A relation bound to both endpoint schemas.

    The callables are closures built at registration time; generic
    find_related_many_* helpers dispatch through them.
    """

    name: str
    kind: RelationKind
    owner: "EntitySchema"
    other: "EntitySchema"
    join_table: Optional[str]
    find: Callable[..., Any]
    aggregate: Optional[Callable[..., Any]] = None
    set: Optional[Callable[..., Any]] = None
    add: Optional[Callable[..., Any]] = None
    remove: Optional[Callable[..., Any]] = None


@dataclass(frozen=True)
class FieldAccessor:
    field: FieldDescriptor
    get: Callable[[Record], Any]
    set: Callable[[Record, Any], Record]


ColumnSpec = Union[FieldDescriptor, str, Sequence[Any]]


def _as_descriptor(column: ColumnSpec) -> FieldDescriptor:
    if isinstance(column, FieldDescriptor):
        return column
    if isinstance(column, str):
        return FieldDescriptor(name=column)
    name, *rest = column
    field_type = FieldType(rest[0]) if rest else FieldType.BINARY
    nullable = bool(rest[1]) if len(rest) > 1 else True
    return FieldDescriptor(name=name, type=field_type, nullable=nullable)


class EntitySchema:
    """
    Schema descriptor for one entity type.

    Parameters
    ----------
    name : str
        Entity type name; also stored in the discriminator column.
    columns : iterable
        Table columns as `FieldDescriptor` values, bare names (binary) or
        ``(name, type[, nullable])`` tuples. An integer ``id`` column is
        prepended when absent.
    table : str, optional
        Table name. Defaults to ``name``.
    fields : "*" or sequence of str
        Which columns to expose. ``"*"`` exposes every column except the
        discriminator; an explicit list always gets ``id`` in front.
    type_field : str, optional
        Discriminator column for entities sharing one table. It may not
        appear in an explicit ``fields`` list.
    relations : sequence
        `Relation` values or ``(kind, [targets][, join_table])`` tuples.
    hooks : Hooks, optional
        Lifecycle hooks; identity by default.
    """

    def __init__(
        self,
        name: str,
        columns: Iterable[ColumnSpec],
        *,
        table: Optional[str] = None,
        fields: Union[str, Sequence[str]] = ALL_FIELDS,
        type_field: Optional[str] = None,
        relations: Sequence[Any] = (),
        hooks: Optional[Hooks] = None,
        driver: Optional["DriverAdapter"] = None,
        driver_options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.name = name
        self.table = table or name
        self.type_field = type_field
        self.hooks = hooks or Hooks()
        self.driver = driver
        self.driver_options: Dict[str, Any] = dict(driver_options or {})
        self.declared_relations: Tuple[Relation, ...] = tuple(
            Relation.coerce(item) for item in relations
        )
        self.relations: Dict[str, ResolvedRelation] = {}

        descriptors = [_as_descriptor(column) for column in columns]
        id_field = next((d for d in descriptors if d.name == ID_FIELD), None)
        if id_field is None:
            id_field = FieldDescriptor(name=ID_FIELD, type=FieldType.INTEGER, nullable=False)
        others = [d for d in descriptors if d.name != ID_FIELD]
        self.columns: Tuple[FieldDescriptor, ...] = (id_field, *others)

        if fields == ALL_FIELDS:
            self.explicit_fields = False
            exposed = [d for d in self.columns if d.name != type_field]
        else:
            self.explicit_fields = True
            by_column = {d.name: d for d in self.columns}
            exposed = [id_field]
            for field_name in fields:
                if field_name == ID_FIELD:
                    continue
                if field_name == type_field:
                    raise ValueError(
                        f"{name}: discriminator {type_field!r} is written by the core, not exposed"
                    )
                if field_name not in by_column:
                    raise UnknownField(name, field_name)
                exposed.append(by_column[field_name])

        self.db_fields: Tuple[FieldDescriptor, ...] = tuple(exposed)
        self.db_field_names: Tuple[str, ...] = tuple(d.name for d in exposed)
        self.value_field_names: Tuple[str, ...] = self.db_field_names[1:]
        self._fields_by_name = {d.name: d for d in exposed}
        self.accessors: Dict[str, FieldAccessor] = self._build_accessors()

    def __repr__(self) -> str:
        return f"EntitySchema({self.name!r}, table={self.table!r})"

    def _build_accessors(self) -> Dict[str, FieldAccessor]:
        accessors = {
            ID_FIELD: FieldAccessor(
                field=self.db_fields[0],
                get=lambda rec: rec.id,
                set=lambda rec, value: rec.model_copy(update={"id": value}),
            )
        }
        for index, descriptor in enumerate(self.db_fields[1:]):
            accessors[descriptor.name] = FieldAccessor(
                field=descriptor,
                get=_positional_getter(index),
                set=_positional_setter(index),
            )
        return accessors

    @property
    def db_num_fields(self) -> int:
        return len(self.db_fields)

    def field(self, name: Any) -> FieldDescriptor:
        """Return the exposed field named ``name`` or raise UnknownField."""
        if isinstance(name, FieldDescriptor):
            name = name.name
        try:
            return self._fields_by_name[name]
        except (KeyError, TypeError):
            raise UnknownField(self.name, name) from None

    def has_field(self, name: str) -> bool:
        return name in self._fields_by_name

    def accessor(self, name: Any) -> FieldAccessor:
        return self.accessors[self.field(name).name]

    def new_record(self) -> Record:
        return Record(entity=self.name, values=(None,) * len(self.value_field_names))

    def hydrate(self, row: Mapping[str, Any]) -> Record:
        """Build a persisted record from a column-name keyed row."""
        return Record(
            entity=self.name,
            is_new=False,
            id=row[ID_FIELD],
            values=tuple(row.get(name) for name in self.value_field_names),
        )

    def as_dict(self, record: Record) -> Dict[str, Any]:
        return {ID_FIELD: record.id, **dict(zip(self.value_field_names, record.values))}

    def relation(self, name: str) -> ResolvedRelation:
        try:
            return self.relations[name]
        except KeyError:
            raise KeyError(f"{self.name} has no relation named {name!r}") from None


def _positional_getter(index: int) -> Callable[[Record], Any]:
    def getter(rec: Record) -> Any:
        return rec.values[index]

    return getter


def _positional_setter(index: int) -> Callable[[Record, Any], Record]:
    def setter(rec: Record, value: Any) -> Record:
        values = list(rec.values)
        values[index] = value
        return rec.model_copy(update={"values": tuple(values)})

    return setter


__all__ = [
    "ALL_FIELDS",
    "ID_FIELD",
    "Hooks",
    "RelationKind",
    "Relation",
    "ResolvedRelation",
    "FieldAccessor",
    "EntitySchema",
]
