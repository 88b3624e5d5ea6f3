"""
Abstract query values produced by the query builder and consumed by drivers.

Nodes are frozen dataclasses so they compare by value; tests and drivers can
inspect them structurally. Field references are plain column names (``"age"``)
or table-qualified `Column` values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Tuple, Union

AND = "and"
OR = "or"

COMPARISON_OPERATORS = frozenset(
    {"=", "!=", "<>", "<", ">", "<=", ">=", "like", "not like", "in", "not in", "is", "is not"}
)
AGGREGATE_FUNCTIONS = frozenset({"count", "sum", "min", "max", "avg"})


@dataclass(frozen=True)
class Column:
    """A table-qualified column reference."""

    table: str
    name: str


FieldRef = Union[str, Column]


@dataclass(frozen=True)
class Cond:
    """Leaf predicate ``field op value``; ``value`` may itself be a `Column`."""

    field: FieldRef
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op.lower() not in COMPARISON_OPERATORS:
            raise ValueError(f"unsupported operator: {self.op!r}")


@dataclass(frozen=True)
class BoolExpr:
    left: "Expr"
    op: str
    right: "Expr"

    def __post_init__(self) -> None:
        if self.op not in (AND, OR):
            raise ValueError(f"unsupported boolean operator: {self.op!r}")


@dataclass(frozen=True)
class Not:
    expr: "Expr"


Expr = Union[Cond, BoolExpr, Not]


@dataclass(frozen=True)
class Call:
    """Aggregate call used in place of a field list, e.g. ``count(*)``."""

    func: str
    field: FieldRef = "*"

    def __post_init__(self) -> None:
        if self.func.lower() not in AGGREGATE_FUNCTIONS:
            raise ValueError(f"unsupported aggregate function: {self.func!r}")


@dataclass(frozen=True)
class Limit:
    count: int
    offset: Optional[int] = None


@dataclass(frozen=True)
class OrderBy:
    """Ordering terms: ``"name"`` or ``("age", "desc")``."""

    terms: Tuple[Union[FieldRef, Tuple[FieldRef, str]], ...]

    def __init__(self, terms: Union[FieldRef, Sequence[Any]]) -> None:
        if isinstance(terms, (str, Column)):
            terms = [terms]
        object.__setattr__(
            self, "terms", tuple(tuple(t) if isinstance(t, list) else t for t in terms)
        )


Extra = Union[Limit, OrderBy]
Extras = Union[None, Extra, Sequence[Extra]]

SelectFields = Union[str, Sequence[FieldRef], Call]


@dataclass(frozen=True)
class Select:
    fields: SelectFields
    tables: Tuple[str, ...]
    where: Optional[Expr] = None
    extras: Tuple[Extra, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Insert:
    table: str
    fields: Tuple[str, ...]
    rows: Tuple[Tuple[Any, ...], ...]


@dataclass(frozen=True)
class Update:
    table: str
    assignments: Tuple[Tuple[str, Any], ...]
    where: Optional[Expr] = None


@dataclass(frozen=True)
class Delete:
    table: str
    where: Optional[Expr] = None


Query = Union[Select, Insert, Update, Delete]


__all__ = [
    "AND",
    "OR",
    "COMPARISON_OPERATORS",
    "AGGREGATE_FUNCTIONS",
    "Column",
    "FieldRef",
    "Cond",
    "BoolExpr",
    "Not",
    "Expr",
    "Call",
    "Limit",
    "OrderBy",
    "Extra",
    "Extras",
    "Select",
    "Insert",
    "Update",
    "Delete",
    "Query",
]
