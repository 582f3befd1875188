"""Session payload serializers."""

from __future__ import annotations

import json
import pickle
from typing import TYPE_CHECKING, Any

from ..errors import NonStringKeyError, SerializationError

if TYPE_CHECKING:
    from .sessions import Session


class JSONSerializer:
    """Encodes session values as a JSON object.

    Only string keys are supported; anything else raises NonStringKeyError
    instead of being silently coerced the way ``json.dumps`` would.
    """

    def serialize(self, session: Session) -> bytes:
        data: dict[str, Any] = {}
        for key, value in session.values.items():
            if not isinstance(key, str):
                raise NonStringKeyError(key)
            data[key] = value
        try:
            return json.dumps(data, separators=(",", ":")).encode()
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot serialize session to JSON: {e}") from e

    def deserialize(self, data: bytes, session: Session) -> None:
        try:
            decoded = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SerializationError(f"Cannot deserialize session from JSON: {e}") from e
        if not isinstance(decoded, dict):
            raise SerializationError(
                f"Session payload is a JSON {type(decoded).__name__}, expected an object"
            )
        session.values.update(decoded)


class PickleSerializer:
    """Encodes session values with pickle, keeping arbitrary key and value types.

    Payloads are only ever read back from the store's own Redis keys; never
    point this at data a client can write.
    """

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL) -> None:
        self.protocol = protocol

    def serialize(self, session: Session) -> bytes:
        try:
            return pickle.dumps(dict(session.values), protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(f"Cannot pickle session values: {e}") from e

    def deserialize(self, data: bytes, session: Session) -> None:
        try:
            decoded = pickle.loads(data)
        except Exception as e:
            # Corrupt payloads surface as almost any exception type.
            raise SerializationError(f"Cannot unpickle session values: {e}") from e
        if not isinstance(decoded, dict):
            raise SerializationError(
                f"Session payload is a {type(decoded).__name__}, expected a dict"
            )
        session.values.update(decoded)
