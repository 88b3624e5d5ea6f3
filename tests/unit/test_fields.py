from __future__ import annotations

import datetime as dt

import pytest

from rowkeeper.domain.fields import FieldDescriptor, FieldType, field_from_string
from rowkeeper.errors import InvalidValue, NullValueViolation, ParseError
from rowkeeper.serialize import field_to_string

INTEGER = FieldDescriptor(name="age", type=FieldType.INTEGER)
FLOAT = FieldDescriptor(name="price", type=FieldType.FLOAT)
DATE = FieldDescriptor(name="born", type=FieldType.DATE)
TIME = FieldDescriptor(name="opens", type=FieldType.TIME)
DATETIME = FieldDescriptor(name="created", type=FieldType.DATETIME)
REQUIRED = FieldDescriptor(name="name", type=FieldType.BINARY, nullable=False)


def test_descriptor_defaults_and_immutability() -> None:
    field = FieldDescriptor(name="title")
    assert field.type is FieldType.BINARY
    assert field.nullable is True
    with pytest.raises(Exception):
        field.name = "other"  # type: ignore[misc]


def test_binary_values_are_kept_as_given() -> None:
    assert field_from_string(REQUIRED, "Joe") == "Joe"


def test_integer_and_float_parsing() -> None:
    assert field_from_string(INTEGER, "30") == 30
    assert field_from_string(INTEGER, "-7") == -7
    assert field_from_string(FLOAT, "2.5") == 2.5
    # integers are accepted for float fields
    assert field_from_string(FLOAT, "3") == 3.0
    assert isinstance(field_from_string(FLOAT, "3"), float)


@pytest.mark.parametrize("text", ["30 years", "", "3.5", "abc", "\u0663\u0660"])
def test_integer_rejects_malformed_text(text: str) -> None:
    with pytest.raises(ParseError):
        field_from_string(INTEGER, text)


def test_date_time_and_datetime_parsing() -> None:
    assert field_from_string(DATE, "02/29/2020") == dt.date(2020, 2, 29)
    assert field_from_string(DATE, "1/2/1999") == dt.date(1999, 1, 2)
    assert field_from_string(TIME, "23:59:00") == dt.time(23, 59, 0)
    assert field_from_string(DATETIME, "12/31/1999 08:05:09") == dt.datetime(1999, 12, 31, 8, 5, 9)


def test_month_out_of_range_is_invalid_value() -> None:
    with pytest.raises(InvalidValue) as excinfo:
        field_from_string(DATE, "13/40/2020")
    assert excinfo.value.component == "month"
    assert excinfo.value.value == 13


@pytest.mark.parametrize(
    "field, text, component",
    [
        (DATE, "12/32/2020", "day"),
        (DATE, "12/01/0", "year"),
        (DATE, "02/30/2021", "day"),
        (TIME, "24:00:00", "hour"),
        (TIME, "10:60:00", "minute"),
        (DATETIME, "01/01/2020 10:00:61", "second"),
    ],
)
def test_out_of_range_components(field: FieldDescriptor, text: str, component: str) -> None:
    with pytest.raises(InvalidValue) as excinfo:
        field_from_string(field, text)
    assert excinfo.value.component == component


@pytest.mark.parametrize(
    "field, text",
    [
        (DATE, "2020-01-01"),
        (TIME, "10:00"),
        (DATETIME, "01/01/2020"),
        (DATE, "01/01/\u0662\u0660\u0662\u0660"),
        (TIME, "\uff11\uff10:00:00"),
        (FLOAT, "\u0663.5"),
    ],
)
def test_malformed_dates_are_parse_errors(field: FieldDescriptor, text: str) -> None:
    with pytest.raises(ParseError):
        field_from_string(field, text)


def test_absent_values_respect_nullability() -> None:
    assert field_from_string(INTEGER, None) is None
    with pytest.raises(NullValueViolation) as excinfo:
        field_from_string(REQUIRED, None)
    assert excinfo.value.field == "name"


@pytest.mark.parametrize(
    "field, value",
    [
        (INTEGER, 42),
        (FLOAT, 0.1),
        (FLOAT, 1e-07),
        (DATE, dt.date(7, 3, 9)),
        (TIME, dt.time(0, 0, 1)),
        (DATETIME, dt.datetime(2024, 11, 5, 17, 45, 3)),
    ],
)
def test_rendered_values_parse_back(field: FieldDescriptor, value: object) -> None:
    assert field_from_string(field, field_to_string(value, field)) == value
