"""
In-memory record values.

A record is an immutable value: every mutation goes through `model_copy` and
returns a new record, so a record held by one caller is never changed under it.
Field values are stored positionally in the owning schema's field order; use
the schema's accessor table to read or write them by name.
"""
from __future__ import annotations

from typing import Any, Tuple

from pydantic import BaseModel, Field


class Record(BaseModel):
    """
    One instance of an entity type, new or persisted.
    """

    entity: str = Field(..., description="Name of the owning entity type.")
    is_new: bool = Field(True, description="True until the record is first inserted.")
    id: Any = Field(None, description="Primary key; meaningful only once persisted.")
    values: Tuple[Any, ...] = Field((), description="Non-id field values in schema order.")
    deleted: bool = Field(False, description="Terminal state set by delete().")

    model_config = {
        "frozen": True,
        "arbitrary_types_allowed": True,
    }

    @property
    def is_saved(self) -> bool:
        return not self.is_new and not self.deleted

    def mark_saved(self, record_id: Any) -> "Record":
        return self.model_copy(update={"is_new": False, "id": record_id})

    def mark_deleted(self) -> "Record":
        return self.model_copy(update={"deleted": True})


__all__ = ["Record"]
