"""Record store package.

Supports two reference backends: in-memory and JSON files.
"""

from .base import Store
from .factory import create_store
from .file_store import FileStore
from .memory import InMemoryStore

__all__ = [
    "FileStore",
    "InMemoryStore",
    "Store",
    "create_store",
]
