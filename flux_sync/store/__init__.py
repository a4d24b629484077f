"""
The store module provides the object repository the reconciler watches and
writes status to.

- Uses NamedResource as the key for all objects.
- Stores values as dataclass instances from manifest.py for type safety.
- Tracks generation and resource version so status writes use optimistic
  concurrency.

This abstract interface allows for various implementations (in-memory, backed
by a cluster API, etc.).
"""

from .store import Store, StoreEvent
from .in_memory import InMemoryStore

__all__ = [
    "Store",
    "StoreEvent",
    "InMemoryStore",
]
