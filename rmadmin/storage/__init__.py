"""Standalone node-label stores.

Used when the resource manager is unreachable:
- FileSystemLabelStore: durable mirror + edit log in a local directory
- InMemoryLabelStore: process-local, refused as a fallback target
"""

from rmadmin.storage.base import LabelStore
from rmadmin.storage.factory import StoreFactory, open_standalone_store, resolve_store_factory
from rmadmin.storage.file_store import FileSystemLabelStore
from rmadmin.storage.memory_store import InMemoryLabelStore

__all__ = [
    "LabelStore",
    "StoreFactory",
    "open_standalone_store",
    "resolve_store_factory",
    "FileSystemLabelStore",
    "InMemoryLabelStore",
]
