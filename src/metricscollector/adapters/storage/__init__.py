"""Counting store adapters implementing CountingStorePort."""

from metricscollector.adapters.storage.in_memory import InMemoryCountingStore
from metricscollector.adapters.storage.sqlite import SQLiteCountingStore

__all__ = ["InMemoryCountingStore", "SQLiteCountingStore"]
