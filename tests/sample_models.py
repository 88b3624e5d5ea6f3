"""
Sample entity models shared by the test-suite.

Also importable by the CLI (``rowkeeper entities sample_models``): the module
exposes a frozen ``registry`` bound to a seeded in-memory driver.
"""

from __future__ import annotations

from typing import List

from memory_driver import InMemoryDriver
from rowkeeper.domain.fields import FieldDescriptor, FieldType
from rowkeeper.domain.schema import EntitySchema
from rowkeeper.entity import Registry

TABLES = ("person", "artist", "painting", "genre", "staff")
JOIN_TABLES = ("genre_painting",)


def sample_schemas() -> List[EntitySchema]:
    """
    Entity schemas shared by unit and integration tests.

    artist 1-n painting, painting n-n genre (join table genre_painting), and two
    entities (manager, engineer) sharing the staff table via a discriminator.
    """
    return [
        EntitySchema(
            "person",
            [
                FieldDescriptor(name="name", type=FieldType.BINARY, nullable=False),
                FieldDescriptor(name="age", type=FieldType.INTEGER),
                FieldDescriptor(name="born", type=FieldType.DATE),
            ],
        ),
        EntitySchema(
            "artist",
            [("name", "binary", False), ("country", "binary")],
            relations=[("one_to_many", ["painting"])],
        ),
        EntitySchema(
            "painting",
            [("title", "binary", False), ("year", "integer"), ("artist_id", "integer")],
            relations=[("many_to_many", ["genre"])],
        ),
        EntitySchema("genre", [("name", "binary", False)]),
        EntitySchema(
            "manager",
            [("name", "binary"), ("level", "integer"), ("language", "binary"), ("kind", "binary")],
            table="staff",
            fields=["name", "level"],
            type_field="kind",
        ),
        EntitySchema(
            "engineer",
            [("name", "binary"), ("level", "integer"), ("language", "binary"), ("kind", "binary")],
            table="staff",
            fields=["name", "language"],
            type_field="kind",
        ),
    ]


def build_memory_driver() -> InMemoryDriver:
    driver = InMemoryDriver()
    for table in TABLES:
        driver.create_table(table)
    for table in JOIN_TABLES:
        driver.create_table(table, serial=False)
    return driver


def build_registry(driver) -> Registry:
    registry = Registry(driver=driver)
    for schema in sample_schemas():
        registry.register(schema)
    return registry.freeze()


registry = build_registry(build_memory_driver())

_person = registry["person"]
for _name, _age in (("Ann", "31"), ("Bob", "24")):
    _person.save(_person.new_from_strings({"name": _name, "age": _age}))
