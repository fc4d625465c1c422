"""Environment-driven settings.

All variables use the ``FAMILY_GRAPH_`` prefix and may come from a
``.env`` file (loaded with python-dotenv by ``load_settings``).
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .persistence.base import RemotePersistenceAdapter

PREFIX = "FAMILY_GRAPH_"
BACKENDS = ("memory", "sqlite", "postgrest")


def _s(name: str, default: str | None = None) -> str | None:
    return os.getenv(PREFIX + name, default)


def _f(name: str, default: float) -> float:
    try:
        return float(os.getenv(PREFIX + name, default))
    except ValueError:
        return default


def _i(name: str, default: int) -> int:
    try:
        return int(os.getenv(PREFIX + name, default))
    except ValueError:
        return default


def _b(name: str, default: bool) -> bool:
    value = os.getenv(PREFIX + name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    backend: str = "sqlite"
    sqlite_path: Path = Path("./data/family_graph.db")
    postgrest_url: str | None = None
    postgrest_api_key: str | None = None
    http_timeout: float = 30.0
    http_max_retries: int = 3
    refetch_after_graph_write: bool = False
    log_level: str = "INFO"
    actor_id: str = "local-user"

    @classmethod
    def from_env(cls) -> Settings:
        defaults = cls()
        backend = (_s("BACKEND", defaults.backend) or defaults.backend).lower()
        if backend not in BACKENDS:
            raise ValueError(f"Unknown backend {backend!r}; expected one of {', '.join(BACKENDS)}")
        return cls(
            backend=backend,
            sqlite_path=Path(_s("SQLITE_PATH", str(defaults.sqlite_path))),
            postgrest_url=_s("POSTGREST_URL"),
            postgrest_api_key=_s("POSTGREST_API_KEY"),
            http_timeout=_f("HTTP_TIMEOUT", defaults.http_timeout),
            http_max_retries=_i("HTTP_MAX_RETRIES", defaults.http_max_retries),
            refetch_after_graph_write=_b("REFETCH_AFTER_GRAPH_WRITE", defaults.refetch_after_graph_write),
            log_level=_s("LOG_LEVEL", defaults.log_level).upper(),
            actor_id=_s("ACTOR_ID", defaults.actor_id),
        )


def load_settings() -> Settings:
    """Load ``.env`` (if present) and read settings from the environment."""
    load_dotenv()
    return Settings.from_env()


def build_adapter(settings: Settings) -> RemotePersistenceAdapter:
    """Construct the persistence adapter selected by ``settings.backend``."""
    if settings.backend == "memory":
        from .persistence.memory import InMemoryRemoteStore

        return InMemoryRemoteStore()

    if settings.backend == "sqlite":
        from .persistence.sqlite import SQLiteRemoteStore

        return SQLiteRemoteStore(settings.sqlite_path)

    if not settings.postgrest_url or not settings.postgrest_api_key:
        raise ValueError(
            f"{PREFIX}POSTGREST_URL and {PREFIX}POSTGREST_API_KEY are required for the postgrest backend"
        )
    from .persistence.postgrest import PostgrestRemoteStore

    return PostgrestRemoteStore(
        settings.postgrest_url,
        settings.postgrest_api_key,
        timeout=settings.http_timeout,
        max_retries=settings.http_max_retries,
    )
