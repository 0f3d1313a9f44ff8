"""Event and activity store implementations."""

from .http_stores import HttpActivityStore, HttpEventStore
from .memory_stores import InMemoryActivityStore, InMemoryEventStore, load_snapshot

__all__ = [
    "HttpActivityStore",
    "HttpEventStore",
    "InMemoryActivityStore",
    "InMemoryEventStore",
    "load_snapshot",
]
