"""Result store implementations."""

from .base import Lease, ResultStore
from .memory import MemoryResultStore
from .sqlite import SQLiteResultStore

__all__ = ["Lease", "MemoryResultStore", "ResultStore", "SQLiteResultStore"]
