# src/punchlist/store/base.py

"""
Shared plumbing for document stores: live subscriptions and snapshot fan-out.

Concrete stores implement two read primitives (one document, one collection)
plus their own writes. Every successful write is followed by a push of fresh
snapshots to the subscribers of that document and of its collection. The
writer awaits the fan-out; publishes are serialized so a subscriber never sees
an older snapshot after a newer one.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable
from typing import Any

from ..core.ports import Document, ErrorCallback

logger = logging.getLogger(__name__)


class StoreSubscription:
    """Cancellable handle returned by subscribe_*; also a context manager."""

    def __init__(self, on_cancel: Callable[[], None], description: str) -> None:
        self._on_cancel = on_cancel
        self._description = description
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._on_cancel()
        logger.debug("Subscription cancelled: %s", self._description)

    def __enter__(self) -> StoreSubscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "active" if self._active else "cancelled"
        return f"<StoreSubscription {self._description} {state}>"


class _Listener:
    __slots__ = ("on_snapshot", "on_error")

    def __init__(self, on_snapshot: Callable[[Any], None], on_error: ErrorCallback | None) -> None:
        self.on_snapshot = on_snapshot
        self.on_error = on_error


class BaseDocumentStore:
    """Subscription bookkeeping shared by MemoryDocumentStore and SqliteDocumentStore."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._collection_listeners: dict[str, dict[int, _Listener]] = {}
        self._document_listeners: dict[tuple[str, str], dict[int, _Listener]] = {}
        self._publish_lock = asyncio.Lock()

    # ---- primitives for subclasses ----

    def _read_document(self, collection: str, key: str) -> Document | None:
        raise NotImplementedError

    def _read_collection(self, collection: str) -> list[tuple[str, Document]]:
        raise NotImplementedError

    async def _read_for_publish(self, read: Callable[[], Any]) -> Any:
        """Run a snapshot read for a push. Stores with blocking reads move it off the loop."""
        return read()

    def _listeners_changed(self) -> None:
        """Called after a listener is added or removed."""

    # ---- subscriptions ----

    def listener_count(self) -> int:
        """Number of live listeners (collection + document). Used for leak checks."""
        return sum(len(v) for v in self._collection_listeners.values()) + sum(
            len(v) for v in self._document_listeners.values()
        )

    def watched_collections(self) -> set[str]:
        """Collections with at least one collection or document listener."""
        return set(self._collection_listeners) | {c for c, _ in self._document_listeners}

    def subscribe_collection(
        self,
        collection: str,
        on_snapshot: Callable[[list[tuple[str, Document]]], None],
        on_error: ErrorCallback | None = None,
    ) -> StoreSubscription:
        sub_id = next(self._ids)
        listener = _Listener(on_snapshot, on_error)
        self._collection_listeners.setdefault(collection, {})[sub_id] = listener

        def _remove() -> None:
            listeners = self._collection_listeners.get(collection)
            if listeners is not None:
                listeners.pop(sub_id, None)
                if not listeners:
                    del self._collection_listeners[collection]
            self._listeners_changed()

        sub = StoreSubscription(_remove, f"collection={collection}")
        self._listeners_changed()
        # The initial snapshot is read inline so subscribe_* stays synchronous.
        self._deliver(listener, lambda: self._read_collection(collection))
        return sub

    def subscribe_document(
        self,
        collection: str,
        key: str,
        on_snapshot: Callable[[Document | None], None],
        on_error: ErrorCallback | None = None,
    ) -> StoreSubscription:
        sub_id = next(self._ids)
        listener = _Listener(on_snapshot, on_error)
        doc_key = (collection, key)
        self._document_listeners.setdefault(doc_key, {})[sub_id] = listener

        def _remove() -> None:
            listeners = self._document_listeners.get(doc_key)
            if listeners is not None:
                listeners.pop(sub_id, None)
                if not listeners:
                    del self._document_listeners[doc_key]
            self._listeners_changed()

        sub = StoreSubscription(_remove, f"document={collection}/{key}")
        self._listeners_changed()
        self._deliver(listener, lambda: self._read_document(collection, key))
        return sub

    # ---- fan-out ----

    async def _publish(self, collection: str, key: str) -> None:
        await self._publish_document(collection, key)
        await self._publish_collection(collection)

    async def _publish_document(self, collection: str, key: str) -> None:
        async with self._publish_lock:
            # Copy the listener map: a callback may cancel or add subscriptions.
            for listener in list(self._document_listeners.get((collection, key), {}).values()):
                await self._deliver_async(listener, lambda: self._read_document(collection, key))

    async def _publish_collection(self, collection: str) -> None:
        async with self._publish_lock:
            for listener in list(self._collection_listeners.get(collection, {}).values()):
                await self._deliver_async(listener, lambda: self._read_collection(collection))

    async def _deliver_async(self, listener: _Listener, read: Callable[[], Any]) -> None:
        try:
            snapshot = await self._read_for_publish(read)
        except Exception as e:
            self._report(listener, e)
            return
        self._dispatch(listener, snapshot)

    @classmethod
    def _deliver(cls, listener: _Listener, read: Callable[[], Any]) -> None:
        try:
            snapshot = read()
        except Exception as e:
            cls._report(listener, e)
            return
        cls._dispatch(listener, snapshot)

    @staticmethod
    def _report(listener: _Listener, err: Exception) -> None:
        logger.exception("Snapshot read failed", exc_info=err)
        if listener.on_error is not None:
            try:
                listener.on_error(err)
            except Exception:
                logger.exception("Subscription error handler crashed")

    @staticmethod
    def _dispatch(listener: _Listener, snapshot: Any) -> None:
        try:
            listener.on_snapshot(snapshot)
        except Exception:
            logger.exception("Subscription snapshot handler crashed")
