from .backend import Codec, SessionSerializer, SessionStore
from .middleware import SessionMiddleware
from .serializers import JSONSerializer, PickleSerializer
from .sessions import Cookie, Options, Registry, Session, get_registry, new_cookie, save, set_cookie
from .store import (
    RedisStore,
    StoreConfig,
    create_store,
    create_store_from_settings,
    create_store_with_client,
    create_store_with_db,
)

__all__ = [
    "Codec",
    "Cookie",
    "JSONSerializer",
    "Options",
    "PickleSerializer",
    "RedisStore",
    "Registry",
    "Session",
    "SessionMiddleware",
    "SessionSerializer",
    "SessionStore",
    "StoreConfig",
    "create_store",
    "create_store_from_settings",
    "create_store_with_client",
    "create_store_with_db",
    "get_registry",
    "new_cookie",
    "save",
    "set_cookie",
]
