# src/punchlist/store/sqlite_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from ..core.ports import Document
from ..errors import DocumentNotFoundError, StoreWriteError
from .base import BaseDocumentStore

logger = logging.getLogger(__name__)


class SqliteDocumentStore(BaseDocumentStore):
    """
    SQLite-backed document store.

    One row per document: (collection, key) -> JSON value, plus a version
    counter bumped on every write.

    Reads and writes:
    - writes and the snapshot reads that follow them run in a worker thread
    - the initial snapshot of a new subscription is read inline, because
      subscribe_* is synchronous

    Changes made by other processes sharing the file:
    - while anything is subscribed, a watcher polls the per-document versions
      of the watched collections every poll_interval seconds and pushes
      snapshots for documents whose version moved
    - the watcher stops when the last listener is cancelled and on close()

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "documents.sqlite3", *, poll_interval: float = 0.5) -> None:
        super().__init__()
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._poll_interval = max(0.01, float(poll_interval))
        self._versions: dict[str, dict[str, int]] = {}
        self._watcher: asyncio.Task | None = None
        self._closed = False
        self._ensure_schema()
        try:
            total = self.count_documents()
        except Exception:
            total = -1
        logger.info("SqliteDocumentStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Stop the change watcher. Connections are per call, so there is nothing else to release."""
        self._closed = True
        self._stop_watcher()

    @property
    def watching(self) -> bool:
        return self._watcher is not None and not self._watcher.done()

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL DEFAULT '{}',
                    updated_at REAL NOT NULL,
                    version INTEGER NOT NULL DEFAULT 1,
                    PRIMARY KEY (collection, key)
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(documents)")
            cols = {row["name"] for row in cur.fetchall()}
            if "version" not in cols:
                cur.execute("ALTER TABLE documents ADD COLUMN version INTEGER NOT NULL DEFAULT 1")
                logger.info("SqliteDocumentStore migration: added column version")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _decode(raw: str | None) -> Document:
        if not raw:
            return {}
        try:
            val = json.loads(raw)
            return val if isinstance(val, dict) else {}
        except ValueError:
            logger.warning("Corrupt document JSON; treating as empty.")
            return {}

    @staticmethod
    def _encode(value: dict[str, Any]) -> str:
        return json.dumps(value, ensure_ascii=False)

    # ---- snapshot reads ----

    def _read_document(self, collection: str, key: str) -> Document | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT value FROM documents WHERE collection = ? AND key = ?",
                (collection, key),
            ).fetchone()
            return self._decode(row["value"]) if row else None
        finally:
            conn.close()

    def _read_collection(self, collection: str) -> list[tuple[str, Document]]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT key, value FROM documents WHERE collection = ? ORDER BY key ASC",
                (collection,),
            ).fetchall()
            return [(str(r["key"]), self._decode(r["value"])) for r in rows]
        finally:
            conn.close()

    def _read_versions(self, collection: str) -> dict[str, int]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT key, version FROM documents WHERE collection = ?", (collection,)
            ).fetchall()
            return {str(r["key"]): int(r["version"]) for r in rows}
        finally:
            conn.close()

    async def _read_for_publish(self, read: Any) -> Any:
        return await asyncio.to_thread(read)

    # ---- writes (worker thread) ----

    def _write_document(self, collection: str, key: str, value: Document) -> int:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO documents(collection, key, value, updated_at, version)
                VALUES (?, ?, ?, ?, 1)
                ON CONFLICT(collection, key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at,
                    version = documents.version + 1
                """,
                (collection, key, self._encode(value), time.time()),
            )
            (version,) = conn.execute(
                "SELECT version FROM documents WHERE collection = ? AND key = ?",
                (collection, key),
            ).fetchone()
            conn.commit()
            return int(version)
        finally:
            conn.close()

    def _merge_fields(self, collection: str, key: str, partial: Document) -> int:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT value, version FROM documents WHERE collection = ? AND key = ?",
                (collection, key),
            ).fetchone()
            if row is None:
                raise DocumentNotFoundError(collection, key)
            current = self._decode(row["value"])
            # Top-level fields are replaced whole; nested values are never merged.
            current.update(partial)
            version = int(row["version"]) + 1
            conn.execute(
                "UPDATE documents SET value = ?, updated_at = ?, version = ? WHERE collection = ? AND key = ?",
                (self._encode(current), time.time(), version, collection, key),
            )
            conn.commit()
            return version
        finally:
            conn.close()

    def _record_version(self, collection: str, key: str, version: int) -> None:
        # Own writes are published directly; the watcher must not push them again.
        seen = self._versions.get(collection)
        if seen is not None:
            seen[key] = version

    # ---- change watcher ----

    def _listeners_changed(self) -> None:
        watched = self.watched_collections()
        for collection in list(self._versions):
            if collection not in watched:
                del self._versions[collection]
        for collection in watched:
            if collection not in self._versions:
                # Baseline before the initial snapshot is read; a change in between is pushed twice, never lost.
                try:
                    self._versions[collection] = self._read_versions(collection)
                except sqlite3.Error:
                    logger.warning("Version baseline failed collection=%s", collection, exc_info=True)
                    self._versions[collection] = {}

        if watched:
            self._start_watcher()
        else:
            self._stop_watcher()

    def _start_watcher(self) -> None:
        if self._closed or self.watching:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; changes from other processes are not watched.")
            return
        self._watcher = loop.create_task(self._watch(), name=f"sqlite-watch:{self._db_path.name}")
        logger.debug("Change watcher started db=%s", self._db_path)

    def _stop_watcher(self) -> None:
        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None
            logger.debug("Change watcher stopped db=%s", self._db_path)

    async def _watch(self) -> None:
        """Polling loop; cancel the task to stop it."""
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                await self.poll_changes()
            except Exception:
                logger.exception("Change poll failed db=%s", self._db_path)

    async def poll_changes(self) -> int:
        """
        Push snapshots for documents changed outside this instance.

        Returns the number of changed documents found across watched collections.
        """
        changed_total = 0
        for collection in sorted(self.watched_collections()):
            current = await asyncio.to_thread(self._read_versions, collection)
            previous = self._versions.get(collection)
            if previous is None:
                # Stopped watching while the read was in flight.
                continue

            changed = [k for k, v in current.items() if previous.get(k) != v]
            changed += [k for k in previous if k not in current]
            self._versions[collection] = current
            if not changed:
                continue

            changed_total += len(changed)
            logger.debug("External changes collection=%s keys=%s", collection, changed)
            for key in changed:
                await self._publish_document(collection, key)
            await self._publish_collection(collection)
        return changed_total

    # ---- public API ----

    def count_documents(self, collection: str | None = None) -> int:
        conn = self._get_conn()
        try:
            if collection is None:
                (n,) = conn.execute("SELECT COUNT(*) FROM documents").fetchone()
            else:
                (n,) = conn.execute(
                    "SELECT COUNT(*) FROM documents WHERE collection = ?", (collection,)
                ).fetchone()
            return int(n)
        finally:
            conn.close()

    async def get_document(self, collection: str, key: str) -> Document | None:
        return await asyncio.to_thread(self._read_document, collection, key)

    async def set_document(self, collection: str, key: str, value: Document) -> None:
        try:
            version = await asyncio.to_thread(self._write_document, collection, key, value)
        except sqlite3.Error as e:
            raise StoreWriteError(f"Failed to write {collection}/{key}: {e}") from e
        self._record_version(collection, key, version)
        logger.debug("set_document %s/%s version=%s", collection, key, version)
        await self._publish(collection, key)

    async def update_fields(self, collection: str, key: str, partial: Document) -> None:
        try:
            version = await asyncio.to_thread(self._merge_fields, collection, key, partial)
        except sqlite3.Error as e:
            raise StoreWriteError(f"Failed to update {collection}/{key}: {e}") from e
        self._record_version(collection, key, version)
        logger.debug("update_fields %s/%s fields=%s version=%s", collection, key, sorted(partial), version)
        await self._publish(collection, key)
