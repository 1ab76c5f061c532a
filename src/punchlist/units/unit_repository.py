# src/punchlist/units/unit_repository.py

from __future__ import annotations

"""
Unit repository.

Maps unit/task operations onto document store primitives. Each unit is one
document keyed by its name.

Concurrency notes:
- Task mutations are read-modify-write over the whole `trades` field. The read
  and the write are separate store calls, so two writers on the same unit can
  race; the later write wins.
- Tasks are addressed by list position. Toggling by index is only safe while
  nobody reorders that trade's list.
"""

import logging
from collections.abc import Callable, Iterable

from ..core.ports import Document, DocumentStore, ErrorCallback, Subscription
from ..errors import DocumentNotFoundError, StaleTaskError, StoreWriteError, UnitExistsError, UnitNotFoundError
from .unit_models import Task, Unit, new_unit

logger = logging.getLogger(__name__)


class UnitRepository:
    def __init__(self, store: DocumentStore, collection: str) -> None:
        self._store = store
        self._collection = collection

    @property
    def collection(self) -> str:
        return self._collection

    # ---- reads ----

    def list_units(
        self,
        on_snapshot: Callable[[list[Unit]], None],
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Live list of units: initial snapshot, then one push per change, until cancelled."""

        def _convert(docs: list[tuple[str, Document]]) -> None:
            on_snapshot([Unit.from_doc(key, value) for key, value in docs])

        return self._store.subscribe_collection(self._collection, _convert, on_error)

    def get_unit(
        self,
        name: str,
        on_snapshot: Callable[[Unit | None], None],
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Live view of one unit; pushes None while the document does not exist."""

        def _convert(doc: Document | None) -> None:
            on_snapshot(Unit.from_doc(name, doc) if doc is not None else None)

        return self._store.subscribe_document(self._collection, name, _convert, on_error)

    async def fetch_unit(self, name: str) -> Unit | None:
        doc = await self._store.get_document(self._collection, name)
        return Unit.from_doc(name, doc) if doc is not None else None

    # ---- writes ----

    async def create_unit(self, name: str, address: str) -> Unit:
        """
        Create a unit with the default checklist.

        Callers are expected to reject empty name/address before calling.
        """
        # Existence check and write are two calls; a concurrent create can still slip in.
        if await self._store.get_document(self._collection, name) is not None:
            raise UnitExistsError(name)

        unit = new_unit(name, address)
        await self._write(lambda: self._store.set_document(self._collection, name, unit.to_doc()), name)
        logger.info("Unit created name=%s", name)
        return unit

    async def set_task_completed(self, unit_name: str, trade: str, index: int, completed: bool) -> Unit:
        unit = await self._load(unit_name)
        tasks = unit.trades.get(trade)
        if tasks is None:
            raise StaleTaskError(unit_name, trade)
        if index < 0 or index >= len(tasks):
            raise StaleTaskError(unit_name, trade, index)

        tasks[index].completed = bool(completed)
        await self._write_trades(unit)
        logger.info("Task updated unit=%s trade=%s index=%s completed=%s", unit_name, trade, index, completed)
        return unit

    async def add_task(self, unit_name: str, trade: str, text: str) -> Unit:
        unit = await self._load(unit_name)
        unit.trades.setdefault(trade, []).append(Task(task=text, completed=False))
        await self._write_trades(unit)
        logger.info("Task added unit=%s trade=%s", unit_name, trade)
        return unit

    async def append_suggested_tasks(self, unit_name: str, trade: str, suggestions: Iterable[str]) -> list[Task]:
        """
        Append suggestions whose text is not already a task in this trade.

        Matching is exact and case-sensitive. Returns the appended tasks; an
        empty list means nothing was new and nothing was written.
        """
        unit = await self._load(unit_name)
        existing = unit.trades.get(trade, [])
        existing_texts = {t.task for t in existing}

        added = [Task(task=text, completed=False) for text in suggestions if text not in existing_texts]

        if not added:
            logger.info("No new suggested tasks unit=%s trade=%s", unit_name, trade)
            return []

        unit.trades[trade] = [*existing, *added]
        await self._write_trades(unit)
        logger.info("Suggested tasks added unit=%s trade=%s count=%d", unit_name, trade, len(added))
        return added

    # ---- helpers ----

    async def _load(self, unit_name: str) -> Unit:
        unit = await self.fetch_unit(unit_name)
        if unit is None:
            raise UnitNotFoundError(unit_name)
        return unit

    async def _write_trades(self, unit: Unit) -> None:
        # Always the complete trades map; never a nested/partial update.
        if unit.malformed_trades:
            logger.warning("Refusing to overwrite non-map trades field unit=%s", unit.name)
            raise StoreWriteError(f'Unit "{unit.name}" has an unreadable trades field; not overwriting it.')
        trades = unit.trades_doc()
        await self._write(
            lambda: self._store.update_fields(self._collection, unit.name, {"trades": trades}),
            unit.name,
        )

    async def _write(self, op: Callable, unit_name: str) -> None:
        try:
            await op()
        except DocumentNotFoundError as e:
            raise UnitNotFoundError(unit_name) from e
        except StoreWriteError:
            raise
        except Exception as e:
            logger.exception("Store write failed unit=%s", unit_name)
            raise StoreWriteError(str(e) or e.__class__.__name__) from e
