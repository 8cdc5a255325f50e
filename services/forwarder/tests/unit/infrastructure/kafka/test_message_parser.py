import json

import pytest
from src.domain.events import FieldKind
from src.infrastructure.kafka.message_parser import decode_payload, parse_event


def test_decode_payload_parses_json():
    raw = json.dumps({"timestamp": 1, "fields": {"host": "web1"}}).encode()

    assert decode_payload(raw) == {"timestamp": 1, "fields": {"host": "web1"}}


@pytest.mark.parametrize("raw", [None, b"\xff\xfe", b"{not json"])
def test_decode_payload_returns_none_for_garbage(raw):
    assert decode_payload(raw) is None


def test_parse_event_compact_form():
    event = parse_event(
        {"timestamp": 60_000_000_000, "fields": {"host": "web1", "usage": 73.2}}
    )

    assert event.timestamp == 60_000_000_000
    kinds = {f.name: f.value_type for f in event.fields}
    assert kinds == {"host": FieldKind.STRING, "usage": FieldKind.DOUBLE}


def test_parse_event_typed_form():
    event = parse_event(
        {
            "timestamp": 5,
            "fields": [
                {"name": "count", "value_type": "integer", "values": [3, 4]},
                {"name": "raw", "value_type": "bytes", "values": []},
            ],
        }
    )

    assert event.fields[0].values == (3, 4)
    assert event.fields[1].value_type is FieldKind.BYTES


@pytest.mark.parametrize(
    "payload",
    [
        None,
        [1, 2],
        "event",
        {"timestamp": "yesterday"},
        {"fields": [{"name": "x", "value_type": "complex", "values": [1]}]},
        {"fields": {"nested": {"a": 1}}},
    ],
)
def test_parse_event_rejects_invalid_payloads(payload):
    assert parse_event(payload) is None
