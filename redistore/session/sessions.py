"""Session objects, cookie rendering and the per-request session registry."""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from email.utils import formatdate
from typing import TYPE_CHECKING, Any

from starlette.datastructures import MutableHeaders
from starlette.responses import Response

from ..errors import SessionStoreError

if TYPE_CHECKING:
    from .backend import SessionStore

FLASHES_KEY = "_flash"
REGISTRY_ATTR = "session_registry"


@dataclass
class Options:
    """Cookie attributes, also used to pick the Redis TTL.

    ``max_age`` of 0 means "use the store default", negative means delete.
    """

    path: str = "/"
    domain: str = ""
    max_age: int = 0
    secure: bool = False
    http_only: bool = False
    same_site: str | None = None

    def copy(self) -> Options:
        return replace(self)


@dataclass
class Cookie:
    name: str
    value: str
    path: str = "/"
    domain: str = ""
    max_age: int = 0
    expires: float | None = None
    secure: bool = False
    http_only: bool = False
    same_site: str | None = None

    def header(self) -> str:
        """Render the value of a ``Set-Cookie`` header."""
        parts = [f"{self.name}={self.value}"]
        if self.path:
            parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.expires is not None:
            parts.append(f"Expires={formatdate(self.expires, usegmt=True)}")
        if self.max_age > 0:
            parts.append(f"Max-Age={self.max_age}")
        elif self.max_age < 0:
            parts.append("Max-Age=0")
        if self.http_only:
            parts.append("HttpOnly")
        if self.secure:
            parts.append("Secure")
        if self.same_site:
            parts.append(f"SameSite={self.same_site}")
        return "; ".join(parts)


def new_cookie(name: str, value: str, options: Options) -> Cookie:
    """Build a cookie for ``name`` carrying ``value`` with ``options``."""
    cookie = Cookie(
        name=name,
        value=value,
        path=options.path,
        domain=options.domain,
        max_age=options.max_age,
        secure=options.secure,
        http_only=options.http_only,
        same_site=options.same_site,
    )
    if options.max_age > 0:
        cookie.expires = time.time() + options.max_age
    elif options.max_age < 0:
        cookie.max_age = -1
        cookie.expires = 1  # Thu, 01 Jan 1970 00:00:01 GMT
    return cookie


def set_cookie(response: Response | MutableHeaders, cookie: Cookie) -> None:
    """Append ``cookie`` to a response (or its headers) as a Set-Cookie header."""
    headers = response.headers if isinstance(response, Response) else response
    headers.append("set-cookie", cookie.header())


class Session:
    """Values for one named session, plus the store that persists them."""

    def __init__(self, store: SessionStore | None, name: str) -> None:
        self.store = store
        self.name = name
        self.id = ""
        self.values: dict[Any, Any] = {}
        self.options = Options()
        self.is_new = True

    def __repr__(self) -> str:
        return f"<Session name={self.name!r} id={self.id!r} is_new={self.is_new}>"

    def flashes(self, key: str = FLASHES_KEY) -> list[Any]:
        """Return and remove the flash messages stored under ``key``."""
        return self.values.pop(key, [])

    def add_flash(self, value: Any, key: str = FLASHES_KEY) -> None:
        self.values.setdefault(key, []).append(value)

    async def save(self, request: Any, response: Response | MutableHeaders) -> None:
        if self.store is None:
            raise SessionStoreError(f"Session {self.name!r} has no store")
        await self.store.save(request, response, self)


class Registry:
    """Sessions used during a single request, keyed by name."""

    def __init__(self, request: Any) -> None:
        self._request = request
        self._sessions: dict[str, tuple[Session, SessionStoreError | None]] = {}

    async def get(self, store: SessionStore, name: str) -> Session:
        """Return the named session, calling ``store.new`` only on first use.

        A ``SessionStoreError`` from the store is cached with its fresh
        session and raised again on later lookups of the same name.
        """
        if name not in self._sessions:
            try:
                session = await store.new(self._request, name)
            except SessionStoreError as e:
                if e.session is not None:
                    self._sessions[name] = (e.session, e)
                raise
            self._sessions[name] = (session, None)
        session, error = self._sessions[name]
        if error is not None:
            raise error.with_traceback(None)
        return session

    def sessions(self) -> list[Session]:
        return [session for session, _ in self._sessions.values()]

    async def save(self, response: Response | MutableHeaders) -> None:
        """Save every session in the registry, stopping at the first failure."""
        for session in self.sessions():
            await session.save(self._request, response)


def get_registry(request: Any) -> Registry:
    """Return the registry stored on ``request.state``, creating it on first use."""
    registry = getattr(request.state, REGISTRY_ATTR, None)
    if registry is None:
        registry = Registry(request)
        setattr(request.state, REGISTRY_ATTR, registry)
    return registry


async def save(request: Any, response: Response | MutableHeaders) -> None:
    """Save all sessions used during the request."""
    await get_registry(request).save(response)
