"""Redis-backed HTTP sessions addressed by signed cookies."""

from .errors import (
    CodecError,
    NonStringKeyError,
    PayloadTooLargeError,
    SerializationError,
    SessionStoreError,
)
from .session import (
    JSONSerializer,
    Options,
    PickleSerializer,
    RedisStore,
    Session,
    SessionMiddleware,
    StoreConfig,
    create_store,
    create_store_from_settings,
    create_store_with_client,
    create_store_with_db,
)

__all__ = [
    "CodecError",
    "JSONSerializer",
    "NonStringKeyError",
    "Options",
    "PayloadTooLargeError",
    "PickleSerializer",
    "RedisStore",
    "SerializationError",
    "Session",
    "SessionMiddleware",
    "SessionStoreError",
    "StoreConfig",
    "create_store",
    "create_store_from_settings",
    "create_store_with_client",
    "create_store_with_db",
]
