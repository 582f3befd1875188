"""Redis session store.

Session values live under ``key_prefix + session.id`` as a serialized blob
with a TTL; the browser only ever holds the signed session ID. There is no
locking: two requests saving the same session race, and the last SETEX wins.
"""

from __future__ import annotations

import base64
import logging
import warnings
from dataclasses import dataclass, field
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError
from starlette.datastructures import MutableHeaders
from starlette.responses import Response

from ..config import Settings, get_settings
from ..errors import CodecError, PayloadTooLargeError, SerializationError
from ..securecookie import codecs_from_pairs, decode_multi, encode_multi, generate_random_key
from .backend import Codec, SessionSerializer
from .serializers import JSONSerializer, PickleSerializer
from .sessions import Options, Session, get_registry, new_cookie, set_cookie

logger = logging.getLogger(__name__)

SESSION_EXPIRE = 86400 * 30  # cookie and codec max age, 30 days
DEFAULT_MAX_AGE = 60 * 20  # Redis TTL for sessions with max_age == 0
DEFAULT_MAX_LENGTH = 4096
DEFAULT_KEY_PREFIX = "session_"

SERIALIZERS: dict[str, type] = {
    "pickle": PickleSerializer,
    "json": JSONSerializer,
}


@dataclass
class StoreConfig:
    key_prefix: str = DEFAULT_KEY_PREFIX
    max_length: int = DEFAULT_MAX_LENGTH  # 0 disables the size check
    default_max_age: int = DEFAULT_MAX_AGE
    serializer: SessionSerializer = field(default_factory=PickleSerializer)


def generate_session_id() -> str:
    """32 random bytes, base32-encoded without padding."""
    return base64.b32encode(generate_random_key(32)).decode().rstrip("=")


class RedisStore:
    """Session store backed by ``redis.asyncio``.

    Build one with ``create_store`` (or a sibling) at startup, share it
    across requests, and ``await store.close()`` at shutdown.
    """

    def __init__(
        self,
        client: redis.Redis,
        *key_pairs: bytes | None,
        config: StoreConfig | None = None,
    ) -> None:
        self.client = client
        self.codecs: list[Codec] = list(codecs_from_pairs(*key_pairs))
        self.options = Options(path="/", max_age=SESSION_EXPIRE)
        self.config = config or StoreConfig()

    # ── Configuration ──────────────────────────────────────────────────────

    def set_max_length(self, length: int) -> None:
        """Limit serialized sessions to ``length`` bytes; 0 means no limit.

        Negative values are ignored.
        """
        if length >= 0:
            self.config.max_length = length

    def set_key_prefix(self, prefix: str) -> None:
        self.config.key_prefix = prefix

    def set_serializer(self, serializer: SessionSerializer) -> None:
        self.config.serializer = serializer

    def set_max_age(self, seconds: int) -> None:
        """Set the default cookie max age and re-apply it to every codec.

        Codecs use the max age to bound signature validity, so change it
        here rather than on ``store.options`` directly. To drop a single
        session, set its ``options.max_age`` to -1 and save it instead.
        """
        self.options.max_age = seconds
        for codec in self.codecs:
            set_codec_max_age = getattr(codec, "set_max_age", None)
            if callable(set_codec_max_age):
                set_codec_max_age(seconds)
            else:
                logger.warning("Can't change max_age on codec %r", codec)

    def key_for(self, session: Session) -> str:
        return f"{self.config.key_prefix}{session.id}"

    # ── Session protocol ───────────────────────────────────────────────────

    async def get(self, request: Any, name: str) -> Session:
        """Return the request's session for ``name``, registering it for ``sessions.save``."""
        return await get_registry(request).get(self, name)

    async def new(self, request: Any, name: str) -> Session:
        """Return a session for ``name`` without adding it to the registry.

        Raises CodecError if the cookie does not decode, or SerializationError
        if the stored payload is corrupt. Either way ``exc.session`` holds a
        usable session and the caller picks between failing the request and
        continuing with it. A Redis error while loading is re-raised unchanged
        with ``exc.session`` set the same way. A missing Redis record is not
        an error.
        """
        session = Session(self, name)
        session.options = self.options.copy()
        session.is_new = True

        raw = request.cookies.get(name)
        if raw is None:
            return session

        try:
            session.id = decode_multi(name, raw, self.codecs)
        except CodecError as e:
            e.session = session
            raise

        try:
            found = await self._load(session)
        except (SerializationError, RedisError) as e:
            e.session = session
            raise
        session.is_new = not found
        return session

    async def save(
        self,
        request: Any,
        response: Response | MutableHeaders,
        session: Session,
    ) -> None:
        """Persist ``session`` and set its cookie, or delete it if max_age <= 0."""
        if session.options.max_age <= 0:
            await self._delete(session)
            options = session.options.copy()
            options.max_age = -1
            set_cookie(response, new_cookie(session.name, "", options))
            return

        if not session.id:
            session.id = generate_session_id()
        await self._save(session)
        encoded = encode_multi(session.name, session.id, self.codecs)
        set_cookie(response, new_cookie(session.name, encoded, session.options))

    async def delete(
        self,
        request: Any,
        response: Response | MutableHeaders,
        session: Session,
    ) -> None:
        """Remove the session from Redis, expire its cookie and clear its values.

        Deprecated: set ``session.options.max_age = -1`` and call ``save``.
        """
        warnings.warn(
            "RedisStore.delete is deprecated; set session.options.max_age = -1 and save",
            DeprecationWarning,
            stacklevel=2,
        )
        await self._delete(session)
        options = session.options.copy()
        options.max_age = -1
        set_cookie(response, new_cookie(session.name, "", options))
        session.values.clear()

    async def close(self) -> None:
        """Close the Redis client and release its connection pool."""
        await self.client.aclose()

    # ── Redis access ───────────────────────────────────────────────────────

    async def _ping(self) -> bool:
        return bool(await self.client.ping())

    async def _load(self, session: Session) -> bool:
        """Read the session from Redis. Returns False if no data is stored."""
        await self.client.ping()
        data = await self.client.get(self.key_for(session))
        if not data:
            return False
        self.config.serializer.deserialize(data, session)
        return True

    async def _save(self, session: Session) -> None:
        data = self.config.serializer.serialize(session)
        if self.config.max_length and len(data) > self.config.max_length:
            raise PayloadTooLargeError(len(data), self.config.max_length)

        await self.client.ping()
        age = session.options.max_age or self.config.default_max_age
        await self.client.setex(self.key_for(session), age, data)

    async def _delete(self, session: Session) -> None:
        await self.client.delete(self.key_for(session))


# ── Construction ───────────────────────────────────────────────────────────


def _build_client(
    pool_size: int,
    network: str,
    address: str,
    password: str,
    db: int = 0,
) -> redis.Redis:
    common: dict[str, Any] = {
        "password": password or None,
        "db": db,
        "max_connections": pool_size,
    }
    if network == "unix":
        return redis.Redis(unix_socket_path=address, **common)
    if network != "tcp":
        raise ValueError(f"Unsupported network {network!r} (expected 'tcp' or 'unix')")

    host, sep, port = address.rpartition(":")
    if not sep:
        host, port = address, "6379"
    return redis.Redis(host=host or "localhost", port=int(port), **common)


async def create_store(
    pool_size: int,
    network: str,
    address: str,
    password: str,
    *key_pairs: bytes | None,
    config: StoreConfig | None = None,
) -> RedisStore:
    """Connect to Redis and return a store. ``pool_size`` caps pooled connections."""
    return await create_store_with_db(
        pool_size, network, address, password, 0, *key_pairs, config=config
    )


async def create_store_with_db(
    pool_size: int,
    network: str,
    address: str,
    password: str,
    db: int,
    *key_pairs: bytes | None,
    config: StoreConfig | None = None,
) -> RedisStore:
    """Like ``create_store`` but selects logical database ``db``."""
    logger.info("Connecting to Redis at %s (%s, db=%d)", address, network, db)
    client = _build_client(pool_size, network, address, password, db)
    try:
        return await create_store_with_client(client, *key_pairs, config=config)
    except Exception:
        await client.aclose()
        raise


async def create_store_with_client(
    client: redis.Redis,
    *key_pairs: bytes | None,
    config: StoreConfig | None = None,
) -> RedisStore:
    """Wrap an already-configured client (custom pooling, TLS, retries).

    The client must return bytes (``decode_responses=False``).
    """
    store = RedisStore(client, *key_pairs, config=config)
    await store._ping()
    return store


async def create_store_from_settings(settings: Settings | None = None) -> RedisStore:
    """Build a store from environment-driven ``Settings``."""
    s = settings or get_settings()
    try:
        serializer_cls = SERIALIZERS[s.session_serializer.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown session serializer {s.session_serializer!r} "
            f"(expected one of {sorted(SERIALIZERS)})"
        ) from None

    config = StoreConfig(
        key_prefix=s.session_key_prefix,
        max_length=s.session_max_length,
        default_max_age=s.session_default_max_age,
        serializer=serializer_cls(),
    )
    store = await create_store_with_db(
        s.redis_pool_size,
        s.redis_network,
        s.redis_address,
        s.redis_password,
        s.redis_db,
        *s.key_pairs,
        config=config,
    )
    store.set_max_age(s.session_max_age)
    return store
