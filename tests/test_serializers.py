"""Tests for the JSON and pickle session serializers."""

import datetime
import json
import pickle
from unittest.mock import patch

import pytest

from redistore.errors import NonStringKeyError, SerializationError
from redistore.session import JSONSerializer, PickleSerializer, Session


def _session(values=None) -> Session:
    session = Session(None, "test")
    session.values.update(values or {})
    return session


def test_json_round_trip():
    values = {"user": "alice", "count": 3, "tags": ["a", "b"], "nested": {"x": None}}
    data = JSONSerializer().serialize(_session(values))

    restored = _session()
    JSONSerializer().deserialize(data, restored)
    assert restored.values == values


def test_json_payload_is_an_object():
    data = JSONSerializer().serialize(_session({"k": "v"}))
    assert json.loads(data) == {"k": "v"}


def test_json_rejects_non_string_keys():
    with pytest.raises(NonStringKeyError) as exc_info:
        JSONSerializer().serialize(_session({42: "answer"}))
    assert exc_info.value.key == 42
    assert isinstance(exc_info.value, SerializationError)


def test_json_rejects_unencodable_values():
    with pytest.raises(SerializationError):
        JSONSerializer().serialize(_session({"when": datetime.datetime.now()}))


def test_json_corrupt_payload():
    with pytest.raises(SerializationError):
        JSONSerializer().deserialize(b"{not json", _session())


def test_json_payload_must_be_object():
    with pytest.raises(SerializationError):
        JSONSerializer().deserialize(b"[1, 2, 3]", _session())


def test_json_deserialize_merges_into_existing_values():
    session = _session({"existing": 1})
    JSONSerializer().deserialize(b'{"loaded": 2}', session)
    assert session.values == {"existing": 1, "loaded": 2}


def test_pickle_round_trip_keeps_key_types():
    values = {
        "name": "bob",
        7: "seven",
        ("a", 1): {"nested": True},
        "when": datetime.date(2024, 1, 2),
    }
    data = PickleSerializer().serialize(_session(values))

    restored = _session()
    PickleSerializer().deserialize(data, restored)
    assert restored.values == values


def test_pickle_empty_session():
    data = PickleSerializer().serialize(_session())
    restored = _session()
    PickleSerializer().deserialize(data, restored)
    assert restored.values == {}


def test_pickle_unpicklable_value():
    with pytest.raises(SerializationError):
        PickleSerializer().serialize(_session({"fn": lambda: None}))


def test_pickle_corrupt_payload():
    with pytest.raises(SerializationError):
        PickleSerializer().deserialize(b"\x80\x05garbage", _session())


def test_pickle_payload_must_be_dict():
    with pytest.raises(SerializationError):
        PickleSerializer().deserialize(pickle.dumps([1, 2]), _session())


def test_pickle_oversized_frame_length():
    # FRAME opcode announcing 2**64 - 1 bytes.
    payload = b"\x80\x05\x95" + b"\xff" * 8 + b"}."
    with pytest.raises(SerializationError):
        PickleSerializer().deserialize(payload, _session())


@pytest.mark.parametrize("error", [OverflowError("too big"), MemoryError()])
def test_pickle_unexpected_loader_errors(error):
    with patch("redistore.session.serializers.pickle.loads", side_effect=error):
        with pytest.raises(SerializationError):
            PickleSerializer().deserialize(b"\x80\x05.", _session())
