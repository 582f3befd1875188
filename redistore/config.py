"""Store configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    redis_network: str = "tcp"  # "tcp" or "unix"
    redis_address: str = "localhost:6379"
    redis_password: str = ""
    redis_db: int = 0
    redis_pool_size: int = 10
    session_keys: list[str] = []  # hash/block key pairs, newest first
    session_key_prefix: str = "session_"
    session_max_length: int = 4096
    session_default_max_age: int = 60 * 20
    session_max_age: int = 86400 * 30
    session_serializer: str = "pickle"  # "pickle" or "json"

    @property
    def key_pairs(self) -> list[bytes]:
        return [k.encode() for k in self.session_keys]

    model_config = {"env_prefix": "REDISTORE_", "case_sensitive": False}


settings: Settings | None = None


def get_settings() -> Settings:
    global settings
    if settings is None:
        settings = Settings()
    return settings


def override_settings(s: Settings | None) -> None:
    """For testing: inject a Settings instance (None resets to the environment)."""
    global settings
    settings = s
