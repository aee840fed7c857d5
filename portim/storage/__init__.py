"""Storage layer - Firestore and in-memory implementations."""

from portim.storage.base import StorageBackend
from portim.storage.memory import InMemoryStorage

__all__ = ["StorageBackend", "InMemoryStorage"]
