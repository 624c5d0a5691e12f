import io

import pytest

from servicemesh.payload import wrap
from servicemesh.serializer import JSONSerializer, clean_up_for_serialization


@pytest.fixture
def serial():
    return JSONSerializer()


@pytest.fixture
def person(serial):
    return serial.map_to_payload(
        {"name": "John", "lastname": "Snow", "faction": "Stark", "Winter": "is coming!"}
    )


def test_remove(person):
    assert person.remove("Winter", "name").raw_map() == {
        "lastname": "Snow",
        "faction": "Stark",
    }


def test_add_many(person):
    result = person.add_many({"page": 1, "pageSize": 15})
    assert result.raw_map() == {
        "name": "John",
        "lastname": "Snow",
        "faction": "Stark",
        "Winter": "is coming!",
        "page": 1,
        "pageSize": 15,
    }


def test_bytes_to_payload(serial):
    message = serial.bytes_to_payload(b'{"name":{"first":"Janet"},"age":47}')
    assert str(message.get("name.first")) == "Janet"
    assert message.get("age").int() == 47


def test_bytes_to_payload_invalid(serial):
    with pytest.raises(ValueError):
        serial.bytes_to_payload(b"{ bad")


def test_context_map_round_trip(serial):
    context_map = {
        "action": "some.service.action",
        "params": {"name": "John", "lastName": "Snow"},
        "sender": "original_sender",
        "level": 2.0,
        "timeout": 0.0,
    }
    message = serial.map_to_payload(context_map)
    assert str(message.get("action")) == "some.service.action"
    assert str(message.get("params.name")) == "John"
    assert str(message.get("params.lastName")) == "Snow"
    values = serial.payload_to_context_map(message)
    assert values["sender"] == "original_sender"
    assert values["level"] == 2 and type(values["level"]) is int
    assert values["timeout"] == 0 and type(values["timeout"]) is int


def test_context_map_requires_map(serial):
    with pytest.raises(ValueError):
        serial.payload_to_context_map(wrap([1]))


def test_reader_to_payload(serial):
    p = serial.reader_to_payload(io.StringIO('{"fieldX":"valueZ"}'))
    assert str(p.get("fieldX")) == "valueZ"


def test_reader_invalid_json(serial):
    p = serial.reader_to_payload(io.StringIO("{ some crazy invalid json }"))
    assert p.error() is not None
    assert str(p.error()) == "invalid json"


def test_map_string_round_trip(serial):
    text = serial.map_to_string({"b": 1, "a": [1, "x"]})
    assert text == '{"a":[1,"x"],"b":1}'
    assert serial.string_to_map(text) == {"a": [1, "x"], "b": 1}


def test_map_to_string_unserializable(serial):
    with pytest.raises(TypeError):
        serial.map_to_string({"a": object()})


def test_string_to_map_errors(serial):
    with pytest.raises(ValueError):
        serial.string_to_map("[1, 2]")
    with pytest.raises(ValueError):
        serial.string_to_map("{nope")


def test_payload_to_string(serial):
    assert serial.payload_to_string(wrap("hello")) == "hello"
    assert serial.payload_to_string(wrap(10)) == "10"
    assert serial.payload_to_string(wrap([1, "a"])) == '[1,"a"]'
    assert serial.payload_to_string(wrap({"a": 1})) == '{"a":1}'
    assert serial.payload_to_string(wrap(RuntimeError("bad"))) == '{"error":"bad"}'
    assert serial.payload_to_bytes(wrap({"a": True})) == b'{"a":true}'


def test_clean_up_for_serialization():
    cleaned = clean_up_for_serialization(
        {
            "fn": lambda: None,
            "raw": b"bytes",
            "nested": {"inner_fn": print, "keep": 1},
            "list": [1, len, {"f": print, "x": 2}],
            "text": "ok",
        }
    )
    assert cleaned == {
        "raw": "bytes",
        "nested": {"keep": 1},
        "list": [1, {"x": 2}],
        "text": "ok",
    }


def test_map_to_payload_drops_functions(serial):
    p = serial.map_to_payload({"a": 1, "fn": lambda: 1})
    assert p.raw_map() == {"a": 1}