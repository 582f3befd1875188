"""Exceptions raised by the session store.

Redis connectivity and command failures are not wrapped: they surface as
``redis.exceptions.RedisError`` subclasses straight from the client.
"""

from __future__ import annotations

from typing import Any


class SessionStoreError(Exception):
    """Base class for session store failures.

    ``session`` is set when a usable (fresh) session was produced alongside
    the failure, so callers can decide whether to carry on with it.
    """

    def __init__(self, message: str, *, session: Any | None = None) -> None:
        super().__init__(message)
        self.session = session


class CodecError(SessionStoreError):
    """Cookie value could not be encoded or decoded (tampered, expired, too long)."""

    def __init__(
        self,
        message: str,
        *,
        errors: list[Exception] | None = None,
        session: Any | None = None,
    ) -> None:
        super().__init__(message, session=session)
        self.errors = errors or []


class SerializationError(SessionStoreError):
    """Session values could not be converted to or from bytes."""


class NonStringKeyError(SerializationError):
    def __init__(self, key: Any) -> None:
        super().__init__(f"Non-string key value, cannot serialize session to JSON: {key!r}")
        self.key = key


class PayloadTooLargeError(SessionStoreError):
    def __init__(self, size: int, max_length: int) -> None:
        super().__init__(
            f"SessionStore: the value to store is too big ({size} > {max_length} bytes)"
        )
        self.size = size
        self.max_length = max_length
