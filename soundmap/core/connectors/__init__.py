"""
Connectors - Storage backends for the analysis cache.

- FileStorage: one JSON file per key (default)
- SQLiteStorage: key/value table
- InMemoryStorage: unit tests
"""

from .file_storage import FileStorage
from .sqlite_storage import SQLiteStorage
from .inmemory_storage import InMemoryStorage

__all__ = [
    'FileStorage',
    'SQLiteStorage',
    'InMemoryStorage',
]
