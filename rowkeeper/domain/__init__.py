"""
Domain package: field descriptors, record values and entity schemas.
"""

from rowkeeper.domain.fields import FieldDescriptor, FieldType, field_from_string
from rowkeeper.domain.records import Record
from rowkeeper.domain.schema import (
    ALL_FIELDS,
    EntitySchema,
    Hooks,
    Relation,
    RelationKind,
    ResolvedRelation,
)

__all__ = [
    "FieldDescriptor",
    "FieldType",
    "field_from_string",
    "Record",
    "ALL_FIELDS",
    "EntitySchema",
    "Hooks",
    "Relation",
    "RelationKind",
    "ResolvedRelation",
]
