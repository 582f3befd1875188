"""ASGI middleware that wires a RedisStore into each request.

The named session is loaded before the app runs and exposed as
``request.state.session``. Every session fetched through the request's
registry is saved when the response starts, so their cookies land in the
response headers.
"""

from __future__ import annotations

import logging

from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..errors import SessionStoreError
from .backend import SessionStore
from .sessions import get_registry

logger = logging.getLogger(__name__)

SESSION_NAME = "session"


class SessionMiddleware:
    """ASGI middleware for Redis-backed sessions.

    A cookie that fails verification, or a payload that fails to
    deserialize, starts a fresh session instead of failing the request.
    Redis errors propagate.
    """

    def __init__(
        self,
        app: ASGIApp,
        store: SessionStore,
        session_name: str = SESSION_NAME,
    ) -> None:
        self.app = app
        self.store = store
        self.session_name = session_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        conn = HTTPConnection(scope)
        registry = get_registry(conn)
        try:
            session = await self.store.get(conn, self.session_name)
        except SessionStoreError as e:
            if e.session is None:
                raise
            logger.debug("Starting a fresh %r session: %s", self.session_name, e)
            session = e.session

        conn.state.session = session

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                await registry.save(MutableHeaders(scope=message))
            await send(message)

        await self.app(scope, receive, send_wrapper)
