# tests/test_document_store.py

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import pytest

from punchlist.errors import DocumentNotFoundError
from punchlist.store import MemoryDocumentStore, SqliteDocumentStore

COLL = "artifacts/test/public/data/units"


@pytest.fixture(params=["memory", "sqlite"])
def doc_store(request, tmp_path: Path):
    if request.param == "memory":
        yield MemoryDocumentStore()
        return
    store = SqliteDocumentStore(tmp_path / "documents.sqlite3")
    yield store
    store.close()


@pytest.mark.asyncio
async def test_set_get_and_update_replaces_top_level_fields(doc_store) -> None:
    await doc_store.set_document(COLL, "A-1", {"address": "1 Main", "trades": {"X": [{"task": "a"}]}})
    await doc_store.update_fields(COLL, "A-1", {"trades": {"Y": []}})

    doc = await doc_store.get_document(COLL, "A-1")
    assert doc == {"address": "1 Main", "trades": {"Y": []}}
    assert await doc_store.get_document(COLL, "missing") is None


@pytest.mark.asyncio
async def test_update_missing_document_raises(doc_store) -> None:
    with pytest.raises(DocumentNotFoundError):
        await doc_store.update_fields(COLL, "ghost", {"status": "x"})


@pytest.mark.asyncio
async def test_document_subscription_initial_push_and_cancel(doc_store) -> None:
    pushes: list = []
    sub = doc_store.subscribe_document(COLL, "A-1", pushes.append)
    assert pushes == [None]

    await doc_store.set_document(COLL, "A-1", {"status": "new"})
    await doc_store.set_document(COLL, "B-1", {"status": "other"})
    assert pushes == [None, {"status": "new"}]

    sub.cancel()
    assert not sub.active
    sub.cancel()
    await doc_store.update_fields(COLL, "A-1", {"status": "done"})
    assert len(pushes) == 2
    assert doc_store.listener_count() == 0


@pytest.mark.asyncio
async def test_collection_subscription_is_scoped_and_ordered(doc_store) -> None:
    pushes: list = []
    with doc_store.subscribe_collection(COLL, pushes.append):
        await doc_store.set_document(COLL, "b", {"n": 2})
        await doc_store.set_document(COLL, "a", {"n": 1})
        await doc_store.set_document("elsewhere", "z", {"n": 9})

    assert pushes[0] == []
    assert pushes[-1] == [("a", {"n": 1}), ("b", {"n": 2})]
    assert len(pushes) == 3
    assert doc_store.listener_count() == 0


@pytest.mark.asyncio
async def test_crashing_subscriber_does_not_block_others(doc_store) -> None:
    seen: list = []

    def boom(_snapshot) -> None:
        raise RuntimeError("render failed")

    doc_store.subscribe_document(COLL, "A-1", boom)
    doc_store.subscribe_document(COLL, "A-1", seen.append)

    await doc_store.set_document(COLL, "A-1", {"status": "ok"})
    assert seen[-1] == {"status": "ok"}


@pytest.mark.asyncio
async def test_snapshots_do_not_alias_stored_state(doc_store) -> None:
    await doc_store.set_document(COLL, "A-1", {"trades": {"X": [{"task": "a", "completed": False}]}})
    doc = await doc_store.get_document(COLL, "A-1")
    doc["trades"]["X"][0]["completed"] = True

    again = await doc_store.get_document(COLL, "A-1")
    assert again["trades"]["X"][0]["completed"] is False


@pytest.mark.asyncio
async def test_sqlite_store_persists_across_instances(tmp_path: Path) -> None:
    db = tmp_path / "documents.sqlite3"
    first = SqliteDocumentStore(db)
    await first.set_document(COLL, "A-1", {"address": "1 Main"})

    second = SqliteDocumentStore(db)
    assert await second.get_document(COLL, "A-1") == {"address": "1 Main"}
    assert second.count_documents(COLL) == 1


@pytest.mark.asyncio
async def test_sqlite_poll_pushes_writes_from_another_instance(tmp_path: Path) -> None:
    db = tmp_path / "documents.sqlite3"
    # Long interval: the test drives polling itself.
    first = SqliteDocumentStore(db, poll_interval=60)
    second = SqliteDocumentStore(db)

    listed: list = []
    docs: list = []
    with first.subscribe_collection(COLL, listed.append), first.subscribe_document(COLL, "A-1", docs.append):
        await second.set_document(COLL, "A-1", {"address": "1 Main"})
        assert listed == [[]]

        assert await first.poll_changes() == 1
        assert listed[-1] == [("A-1", {"address": "1 Main"})]
        assert docs == [None, {"address": "1 Main"}]

        await second.update_fields(COLL, "A-1", {"status": "Done"})
        assert await first.poll_changes() == 1
        assert docs[-1] == {"address": "1 Main", "status": "Done"}

        # Nothing new: no push.
        before = (len(listed), len(docs))
        assert await first.poll_changes() == 0
        assert (len(listed), len(docs)) == before

    first.close()


@pytest.mark.asyncio
async def test_sqlite_own_writes_are_not_pushed_twice(tmp_path: Path) -> None:
    store = SqliteDocumentStore(tmp_path / "documents.sqlite3", poll_interval=60)
    listed: list = []
    with store.subscribe_collection(COLL, listed.append):
        await store.set_document(COLL, "A-1", {"address": "1 Main"})
        assert len(listed) == 2
        assert await store.poll_changes() == 0
        assert len(listed) == 2
    store.close()


@pytest.mark.asyncio
async def test_sqlite_watcher_delivers_without_explicit_poll(tmp_path: Path) -> None:
    db = tmp_path / "documents.sqlite3"
    first = SqliteDocumentStore(db, poll_interval=0.01)
    second = SqliteDocumentStore(db)

    listed: list = []
    sub = first.subscribe_collection(COLL, listed.append)
    assert first.watching

    await second.set_document(COLL, "B-2", {"address": "2 Main"})
    for _ in range(300):
        if len(listed) > 1:
            break
        await asyncio.sleep(0.01)
    assert listed[-1] == [("B-2", {"address": "2 Main"})]

    sub.cancel()
    assert not first.watching
    first.close()


@pytest.mark.asyncio
async def test_sqlite_close_stops_watcher_for_good(tmp_path: Path) -> None:
    store = SqliteDocumentStore(tmp_path / "documents.sqlite3")
    sub = store.subscribe_collection(COLL, lambda docs: None)
    assert store.watching

    store.close()
    assert not store.watching

    # Subscriptions still work after close, but no watcher comes back.
    other = store.subscribe_document(COLL, "A-1", lambda doc: None)
    assert not store.watching
    other.cancel()
    sub.cancel()


class _ThreadRecordingStore(SqliteDocumentStore):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.read_threads: list[int] = []

    def _read_collection(self, collection: str):
        self.read_threads.append(threading.get_ident())
        return super()._read_collection(collection)


@pytest.mark.asyncio
async def test_sqlite_push_reads_run_off_the_event_loop(tmp_path: Path) -> None:
    store = _ThreadRecordingStore(tmp_path / "documents.sqlite3", poll_interval=60)
    loop_thread = threading.get_ident()

    with store.subscribe_collection(COLL, lambda docs: None):
        await store.set_document(COLL, "A-1", {"address": "1 Main"})

    initial, after_write = store.read_threads
    assert initial == loop_thread
    assert after_write != loop_thread
    store.close()
