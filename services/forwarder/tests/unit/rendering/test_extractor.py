import pytest
from src.domain.events import Event, EventField, FieldKind
from src.rendering.extractor import extract_fields, format_double


@pytest.mark.parametrize(
    "value,expected",
    [
        (73.2, "73.2"),
        (5.0, "5"),
        (-0.0, "-0"),
        (0.1, "0.1"),
        (1e-05, "0.00001"),
        (1e16, "10000000000000000"),
        (123456.789, "123456.789"),
        (float("inf"), "+Inf"),
        (float("-inf"), "-Inf"),
        (float("nan"), "NaN"),
    ],
)
def test_format_double(value, expected):
    assert format_double(value) == expected


def test_extracts_first_value_of_each_supported_kind():
    event = Event(
        fields=[
            EventField(name="host", value_type=FieldKind.STRING, values=["web1", "x"]),
            EventField(name="count", value_type=FieldKind.INTEGER, values=[-12, 4]),
            EventField(name="usage", value_type=FieldKind.DOUBLE, values=[73.2]),
        ]
    )

    assert extract_fields(event) == {"host": "web1", "count": "-12", "usage": "73.2"}


def test_omits_empty_and_unsupported_fields():
    event = Event(
        fields=[
            EventField(name="empty", value_type=FieldKind.STRING, values=[]),
            EventField(name="empty_int", value_type=FieldKind.INTEGER, values=[]),
            EventField(name="flag", value_type=FieldKind.BOOL, values=[True]),
            EventField(name="blob", value_type=FieldKind.BYTES, values=[b"\x00"]),
            EventField(name="host", value_type=FieldKind.STRING, values=["db1"]),
        ]
    )

    assert extract_fields(event) == {"host": "db1"}


def test_event_without_fields_yields_empty_table():
    assert extract_fields(Event(timestamp=0)) == {}


def test_whole_double_renders_as_integer_text():
    event = Event(fields={"load": 2.0})

    assert extract_fields(event) == {"load": "2"}


def test_later_field_with_same_name_wins():
    event = Event(
        fields=[
            EventField(name="host", value_type=FieldKind.STRING, values=["web1"]),
            EventField(name="usage", value_type=FieldKind.INTEGER, values=[1]),
            EventField(name="host", value_type=FieldKind.STRING, values=["web2"]),
            EventField(name="usage", value_type=FieldKind.DOUBLE, values=[2.5]),
        ]
    )

    assert extract_fields(event) == {"host": "web2", "usage": "2.5"}
