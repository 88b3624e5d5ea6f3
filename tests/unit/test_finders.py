from __future__ import annotations

import pytest

from memory_driver import InMemoryDriver
from rowkeeper.domain.schema import EntitySchema, Hooks
from rowkeeper.entity import Entity, Registry
from rowkeeper.errors import DriverError, TooManyResults
from rowkeeper.finders import as_single_val
from rowkeeper.query.ast import Limit, OrderBy, Select


@pytest.fixture
def people(person: Entity) -> Entity:
    for name, age in (("Ann", 31), ("Bob", 24), ("Cid", 45), ("Dee", 24)):
        person.save(person.new_with({"name": name, "age": age}))
    return person


def _names(entity: Entity, records) -> list:
    return [entity.get(record, "name") for record in records]


def test_find_with_where_and_order(people: Entity) -> None:
    found = people.find(("age", ">", 26), OrderBy([("age", "desc")]))
    assert _names(people, found) == ["Cid", "Ann"]
    assert all(not record.is_new for record in found)


def test_find_without_arguments_returns_everything(people: Entity) -> None:
    assert len(people.find()) == 4


def test_find_first_max_and_range(people: Entity) -> None:
    by_name = OrderBy("name")
    assert people.get(people.find_first(extras=by_name), "name") == "Ann"
    assert people.find_first(("age", ">", 99)) is None
    assert _names(people, people.find_max(2, ("age", "=", 24), by_name)) == ["Bob", "Dee"]
    assert _names(people, people.find_range(1, 2, extras=by_name)) == ["Bob", "Cid"]


def test_limit_is_appended_after_caller_extras(people: Entity, memory_driver: InMemoryDriver) -> None:
    people.find_range(2, 5, extras=[OrderBy("age")])
    query = memory_driver.statements[-1]
    assert isinstance(query, Select)
    assert query.extras == (OrderBy("age"), Limit(5, offset=2))


def test_find_id(people: Entity) -> None:
    assert people.get(people.find_id(3), "name") == "Cid"
    assert people.find_id(404) is None


def test_count_and_aggregates(people: Entity) -> None:
    assert people.count() == 4
    assert people.count(("age", "=", 24)) == 2
    assert people.aggregate("max", "age") == 45
    assert people.aggregate("min", "age", ("name", "like", "%e%")) == 24
    assert people.aggregate("avg", "age") == pytest.approx(31.0)


def test_as_single_val() -> None:
    assert as_single_val([]) is None
    assert as_single_val([(7,)], scalar=True) == 7
    assert as_single_val(["only"]) == "only"
    with pytest.raises(TooManyResults) as excinfo:
        as_single_val([(1,), (2,)])
    assert excinfo.value.count == 2


def test_after_fetch_can_transform_records(memory_driver: InMemoryDriver) -> None:
    registry = Registry(driver=memory_driver)
    labels = registry.register(
        EntitySchema("person", [("name", "binary")], hooks=Hooks(after_fetch=lambda rec: rec.values[0]))
    )
    registry.freeze()
    labels.save(labels.new_with({"name": "Ann"}))

    assert labels.find() == ["Ann"]


def test_entities_sharing_a_table_are_partitioned(registry: Registry, memory_driver: InMemoryDriver) -> None:
    manager, engineer = registry["manager"], registry["engineer"]
    manager.save(manager.new_with({"name": "Mia", "level": 3}))
    engineer.save(engineer.new_with({"name": "Eli", "language": "python"}))
    engineer.save(engineer.new_with({"name": "Ada", "language": "erlang"}))

    assert [row["kind"] for row in memory_driver.rows("staff")] == ["manager", "engineer", "engineer"]
    assert _names(manager, manager.find()) == ["Mia"]
    assert _names(engineer, engineer.find(extras=OrderBy("name"))) == ["Ada", "Eli"]
    assert manager.count() == 1
    assert engineer.count(("language", "=", "python")) == 1

    # a row id owned by the other entity is invisible here
    assert manager.find_id(2) is None
    assert engineer.delete_where() == 2
    assert manager.count() == 1


def test_driver_errors_propagate(people: Entity, memory_driver: InMemoryDriver) -> None:
    memory_driver.fail_on = lambda query: isinstance(query, Select)
    with pytest.raises(DriverError):
        people.find()
