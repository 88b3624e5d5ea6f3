"""
Driver adapter interface and transaction result contracts.

Concrete backends (e.g. PostgreSQL) implement the DriverAdapter protocol. The
core only ever talks to a driver through these five calls and never sees a
connection, cursor or SQL string.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Generic,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
    Union,
    runtime_checkable,
)

from rowkeeper.domain.records import Record
from rowkeeper.query.ast import Query, Select

if TYPE_CHECKING:  # pragma: no cover
    from rowkeeper.domain.schema import EntitySchema

T = TypeVar("T")

Options = Optional[Mapping[str, Any]]


@dataclass(frozen=True)
class Committed(Generic[T]):
    value: T


@dataclass(frozen=True)
class Aborted:
    error: Any


TransactionResult = Union[Committed[T], Aborted]


@runtime_checkable
class DriverAdapter(Protocol):
    """
    Common interface every database backend must implement.

    Methods return plain values and raise `rowkeeper.errors.DriverError` on
    backend failure. `transaction` is the exception: it reports failure as an
    `Aborted` value after rolling back.
    """

    def select(self, query: Select, options: Options = None) -> List[Sequence[Any]]:
        """Run a select and return raw rows as tuples."""
        ...

    def select_as(
        self, schema: "EntitySchema", query: Select, options: Options = None
    ) -> List[Record]:
        """Run a select and hydrate each row into a record of ``schema``."""
        ...

    def update(self, query: Query, options: Options = None) -> int:
        """Run an insert/update/delete and return the affected row count."""
        ...

    def get_last_insert_id(self, options: Options = None) -> Any:
        """Return the identifier generated by the last insert in this transaction."""
        ...

    def transaction(self, body: Callable[[], T], options: Options = None) -> TransactionResult:
        """Run ``body`` atomically; commit on return, roll back on exception."""
        ...


class AbstractDriver(abc.ABC):
    """
    Optional ABC helper for class-based driver implementations.
    """

    name: str = "abstract"

    @abc.abstractmethod
    def select(
        self, query: Select, options: Options = None
    ) -> List[Sequence[Any]]:  # pragma: no cover - interface only
        raise NotImplementedError

    def select_as(
        self, schema: "EntitySchema", query: Select, options: Options = None
    ) -> List[Record]:
        rows = self.select_dicts(query, options)
        return [schema.hydrate(row) for row in rows]

    @abc.abstractmethod
    def select_dicts(
        self, query: Select, options: Options = None
    ) -> List[Mapping[str, Any]]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def update(self, query: Query, options: Options = None) -> int:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def get_last_insert_id(self, options: Options = None) -> Any:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def transaction(
        self, body: Callable[[], T], options: Options = None
    ) -> TransactionResult:  # pragma: no cover - interface only
        raise NotImplementedError


__all__ = [
    "Committed",
    "Aborted",
    "TransactionResult",
    "Options",
    "DriverAdapter",
    "AbstractDriver",
]
