"""Shared fixtures for the session store test suite."""

from __future__ import annotations

from typing import Any

import fakeredis
import fakeredis.aioredis
import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient
from starlette.requests import Request as StarletteRequest

from redistore.config import Settings, override_settings
from redistore.dependencies import destroy_session, get_session
from redistore.session import RedisStore, Session, SessionMiddleware

HASH_KEY = b"test-hash-key-0123456789abcdef!!"
BLOCK_KEY = b"0123456789abcdef0123456789abcdef"  # AES-256


# ── Redis doubles ─────────────────────────────────────────────────────────

class DictRedis:
    """Dict-backed stand-in for ``redis.asyncio.Redis``.

    Not bound to an event loop, so it survives TestClient running each
    request in its own loop. Records TTLs and commands for assertions.
    """

    def __init__(self) -> None:
        self.store: dict[str, bytes] = {}
        self.ttls: dict[str, int] = {}
        self.commands: list[str] = []
        self.closed = False

    async def ping(self) -> bool:
        self.commands.append("PING")
        return True

    async def get(self, key: str) -> bytes | None:
        self.commands.append("GET")
        return self.store.get(key)

    async def setex(self, key: str, ttl: int, value: bytes) -> bool:
        self.commands.append("SETEX")
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys: str) -> int:
        self.commands.append("DEL")
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def redis_client():
    """fakeredis client (in-memory Redis emulation) returning bytes.

    Each test gets its own FakeServer so no data leaks between tests.
    """
    return fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=False)


@pytest.fixture
def store(redis_client) -> RedisStore:
    return RedisStore(redis_client, HASH_KEY, BLOCK_KEY)


@pytest.fixture
def dict_redis() -> DictRedis:
    return DictRedis()


# ── Requests ──────────────────────────────────────────────────────────────

@pytest.fixture
def make_request():
    """Factory for bare HTTP requests carrying cookies."""

    def _make(cookies: dict[str, str] | None = None) -> StarletteRequest:
        headers: list[tuple[bytes, bytes]] = []
        if cookies:
            header = "; ".join(f"{k}={v}" for k, v in cookies.items())
            headers.append((b"cookie", header.encode()))
        scope: dict[str, Any] = {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": headers,
            "query_string": b"",
        }
        return StarletteRequest(scope)

    return _make


# ── Settings ──────────────────────────────────────────────────────────────

@pytest.fixture
def test_settings():
    s = Settings(
        redis_address="localhost:6379",
        session_keys=[HASH_KEY.decode(), BLOCK_KEY.decode()],
        session_max_age=3600,
    )
    override_settings(s)
    yield s
    override_settings(None)


# ── App & Client ──────────────────────────────────────────────────────────

@pytest.fixture
def app_store(dict_redis) -> RedisStore:
    return RedisStore(dict_redis, HASH_KEY, BLOCK_KEY)


@pytest.fixture
def app(app_store):
    """Minimal app exercising the session middleware."""
    app = FastAPI()

    @app.get("/set")
    async def set_value(request: Request):
        request.state.session.values["key"] = "value"
        return {"ok": True}

    @app.get("/get")
    async def get_value(session: Session = Depends(get_session)):
        return {"key": session.values.get("key"), "is_new": session.is_new}

    @app.get("/flash")
    async def add_flash(request: Request):
        request.state.session.add_flash("saved")
        return {"ok": True}

    @app.get("/flashes")
    async def read_flashes(request: Request):
        return {"flashes": request.state.session.flashes()}

    @app.get("/destroy")
    async def destroy(request: Request):
        destroy_session(request)
        return {"ok": True}

    app.add_middleware(SessionMiddleware, store=app_store, session_name="sid")
    return app


@pytest.fixture
def client(app) -> TestClient:
    """TestClient with cookie persistence."""
    return TestClient(app, cookies={})
