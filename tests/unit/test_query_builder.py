from __future__ import annotations

import pytest

from rowkeeper.domain.records import Record
from rowkeeper.domain.schema import EntitySchema
from rowkeeper.entity import Registry
from rowkeeper.query.ast import BoolExpr, Call, Column, Cond, Delete, Insert, Limit, Not, OrderBy, Select, Update
from rowkeeper.query.builder import (
    and_expr,
    append_extras,
    as_expr,
    build_aggregate,
    build_delete,
    build_find,
    build_insert,
    build_link,
    build_related_many_to_many,
    build_unlink,
    build_update,
    field_names_for_query,
    make_id_expr,
    make_where_expr,
)

X = Cond("age", ">", 26)
Y = Cond("name", "like", "J%")


def test_and_expr_treats_missing_side_as_identity() -> None:
    assert and_expr(None, X) == X
    assert and_expr(X, None) == X
    assert and_expr(None, None) is None
    assert and_expr(X, Y) == BoolExpr(X, "and", Y)


def test_append_extras_keeps_caller_order() -> None:
    clause = Limit(5)
    order = OrderBy("name")
    assert append_extras(clause, None) == clause
    assert append_extras(clause, [order]) == [order, clause]
    assert append_extras(clause, order) == [order, clause]


def test_as_expr_normalizes_tuple_shorthand() -> None:
    assert as_expr(("age", ">", 26)) == X
    assert as_expr((("age", ">", 26), "or", ("name", "like", "J%"))) == BoolExpr(X, "or", Y)
    assert as_expr(("not", ("age", ">", 26))) == Not(X)
    with pytest.raises(ValueError):
        as_expr(("age", "between", 1))


def test_plain_schema_selects_star_without_discriminator(registry: Registry) -> None:
    person = registry["person"].schema
    query = build_find(person, ("age", ">", 26), Limit(3))
    assert query == Select(fields="*", tables=("person",), where=X, extras=(Limit(3),))


def test_discriminator_is_conjoined_into_where(registry: Registry) -> None:
    manager = registry["manager"].schema
    kind = Cond(Column("staff", "kind"), "=", "manager")

    assert make_where_expr(manager) == kind
    assert make_where_expr(manager, X) == BoolExpr(kind, "and", X)
    assert make_where_expr(manager, X, Y) == BoolExpr(kind, "and", BoolExpr(X, "and", Y))

    query = build_find(manager)
    assert query.fields == ("id", "name", "level")
    assert query.where == kind


def test_field_names_for_query(registry: Registry) -> None:
    assert field_names_for_query(registry["person"].schema, use_star=True) == "*"
    assert field_names_for_query(registry["person"].schema) == ["id", "name", "age", "born"]
    assert field_names_for_query(registry["engineer"].schema, use_star=True) == ["id", "name", "language"]


def test_insert_carries_discriminator_value(registry: Registry) -> None:
    manager = registry["manager"].schema
    record = Record(entity="manager", values=("Ann", 3))
    assert build_insert(manager, record) == Insert(
        table="staff", fields=("kind", "name", "level"), rows=(("manager", "Ann", 3),)
    )


def test_update_and_delete_statements(registry: Registry) -> None:
    person = registry["person"].schema
    record = Record(entity="person", is_new=False, id=4, values=("Joe", 30, None))
    assert build_update(person, record) == Update(
        table="person",
        assignments=(("name", "Joe"), ("age", 30), ("born", None)),
        where=Cond("id", "=", 4),
    )
    assert build_delete(person, X) == Delete(table="person", where=X)
    assert build_delete(person) == Delete(table="person", where=None)


def test_aggregate_uses_call_in_field_position(registry: Registry) -> None:
    query = build_aggregate(registry["person"].schema, "avg", "age", X)
    assert query.fields == Call("avg", "age")
    assert query.where == X


def test_make_id_expr_uses_foreign_key_convention() -> None:
    artist = Record(entity="artist", is_new=False, id=9)
    assert make_id_expr(artist) == Cond("artist_id", "=", 9)
    assert make_id_expr(artist, X) == BoolExpr(Cond("artist_id", "=", 9), "and", X)


def test_many_to_many_select_joins_both_foreign_keys(registry: Registry) -> None:
    genre = registry["genre"].schema
    painting = Record(entity="painting", is_new=False, id=2)
    fields = [Column("genre", "id"), Column("genre", "name")]

    query = build_related_many_to_many(genre, "genre_painting", painting, fields, Y, OrderBy("name"))

    assert query.tables == ("genre", "genre_painting")
    assert query.fields == tuple(fields)
    assert query.where == BoolExpr(
        BoolExpr(
            Cond(Column("genre", "id"), "=", Column("genre_painting", "genre_id")),
            "and",
            Cond(Column("genre_painting", "painting_id"), "=", 2),
        ),
        "and",
        Y,
    )
    assert query.extras == (OrderBy("name"),)


def test_link_and_unlink_statements() -> None:
    painting = Record(entity="painting", is_new=False, id=2)
    genre = Record(entity="genre", is_new=False, id=5)
    assert build_link("genre_painting", painting, genre) == Insert(
        table="genre_painting", fields=("painting_id", "genre_id"), rows=((2, 5),)
    )
    assert build_unlink("genre_painting", painting, genre).where == BoolExpr(
        Cond("painting_id", "=", 2), "and", Cond("genre_id", "=", 5)
    )


def test_rejects_unknown_operators_and_aggregates() -> None:
    with pytest.raises(ValueError):
        Cond("age", "; drop table", 1)
    with pytest.raises(ValueError):
        Call("median", "age")


def test_explicit_fields_must_exist() -> None:
    with pytest.raises(KeyError):
        EntitySchema("thing", [("name", "binary")], fields=["name", "missing"])


def test_discriminator_cannot_be_an_exposed_field() -> None:
    with pytest.raises(ValueError, match="kind"):
        EntitySchema(
            "manager",
            [("name", "binary"), ("kind", "binary")],
            table="staff",
            fields=["name", "kind"],
            type_field="kind",
        )
