# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field

from punchlist.core.ports import Document
from punchlist.errors import StoreWriteError
from punchlist.store.memory import MemoryDocumentStore


@dataclass(slots=True)
class Notice:
    text: str
    level: str


@dataclass(slots=True)
class FakeNotifier:
    """Collects notices instead of showing them."""

    notices: list[Notice] = field(default_factory=list)

    def notify(self, text: str, level: str = "info") -> None:
        self.notices.append(Notice(text=text, level=level))

    @property
    def errors(self) -> list[str]:
        return [n.text for n in self.notices if n.level == "error"]

    @property
    def infos(self) -> list[str]:
        return [n.text for n in self.notices if n.level != "error"]


class FakeSuggestionGateway:
    """
    Deterministic suggestion gateway for unit tests.

    - Captures requested trades for assertions
    - Returns `result`, or raises it when it is an exception
    """

    def __init__(self, result: list[str] | Exception | None = None) -> None:
        self.result: list[str] | Exception = result if result is not None else ["Task A", "Task B"]
        self.calls: list[str] = []

    async def suggest_tasks(self, trade: str) -> list[str]:
        self.calls.append(trade)
        if isinstance(self.result, Exception):
            raise self.result
        return list(self.result)


class FlakyStore(MemoryDocumentStore):
    """
    Memory store that fails chosen set_document calls (1-based call numbers)
    and records every write for assertions.
    """

    def __init__(self, fail_on_set: set[int] | None = None) -> None:
        super().__init__()
        self.fail_on_set = set(fail_on_set or ())
        self.set_calls = 0
        self.updates: list[tuple[str, str, Document]] = []

    async def set_document(self, collection: str, key: str, value: Document) -> None:
        self.set_calls += 1
        if self.set_calls in self.fail_on_set:
            raise StoreWriteError("simulated connectivity loss")
        await super().set_document(collection, key, value)

    async def update_fields(self, collection: str, key: str, partial: Document) -> None:
        self.updates.append((collection, key, partial))
        await super().update_fields(collection, key, partial)
