"""
Document store subsystem.

Components:
- base.py: subscription handles and snapshot fan-out shared by all stores
- memory.py: process-local store (tests, demos)
- sqlite_store.py: SQLite-backed store that persists across runs
"""

from __future__ import annotations

from .base import BaseDocumentStore, StoreSubscription
from .memory import MemoryDocumentStore
from .sqlite_store import SqliteDocumentStore

__all__ = ["BaseDocumentStore", "MemoryDocumentStore", "SqliteDocumentStore", "StoreSubscription"]
