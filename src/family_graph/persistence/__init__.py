"""Remote persistence adapters."""

from .base import RemotePersistenceAdapter
from .memory import InMemoryRemoteStore
from .postgrest import PostgrestRemoteStore
from .sqlite import SQLiteRemoteStore

__all__ = [
    "RemotePersistenceAdapter",
    "InMemoryRemoteStore",
    "SQLiteRemoteStore",
    "PostgrestRemoteStore",
]
