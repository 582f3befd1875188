"""Capability protocols shared by the session store and its collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .sessions import Session


@runtime_checkable
class SessionSerializer(Protocol):
    """Converts a session's values to and from a byte payload."""

    def serialize(self, session: Session) -> bytes:
        """Encode ``session.values``. Raises SerializationError."""
        ...

    def deserialize(self, data: bytes, session: Session) -> None:
        """Decode ``data`` and merge it into ``session.values``."""
        ...


@runtime_checkable
class Codec(Protocol):
    """Authenticates (and optionally encrypts) a cookie value."""

    def encode(self, name: str, value: str) -> str:
        ...

    def decode(self, name: str, value: str) -> str:
        ...


@runtime_checkable
class SessionStore(Protocol):
    """Protocol for stores that hand out and persist sessions."""

    async def get(self, request: Any, name: str) -> Session:
        """Return the request's cached session for ``name``, creating it once."""
        ...

    async def new(self, request: Any, name: str) -> Session:
        """Return a session for ``name`` without registering it."""
        ...

    async def save(self, request: Any, response: Any, session: Session) -> None:
        """Persist the session and set its cookie on the response."""
        ...
