"""Persistencia de perfiles de simulación."""

from .in_memory_store import InMemoryProfileStore
from .profile_store import ProfileStore, SqlProfileStore

__all__ = [
    "InMemoryProfileStore",
    "ProfileStore",
    "SqlProfileStore",
]
