# src/punchlist/store/memory.py

from __future__ import annotations

import copy
import logging

from ..core.ports import Document
from ..errors import DocumentNotFoundError
from .base import BaseDocumentStore

logger = logging.getLogger(__name__)


class MemoryDocumentStore(BaseDocumentStore):
    """
    Process-local document store.

    Values are deep-copied on the way in and out, so snapshots handed to
    subscribers never alias stored state.
    """

    def __init__(self) -> None:
        super().__init__()
        self._data: dict[str, dict[str, Document]] = {}

    def _read_document(self, collection: str, key: str) -> Document | None:
        value = self._data.get(collection, {}).get(key)
        return copy.deepcopy(value) if value is not None else None

    def _read_collection(self, collection: str) -> list[tuple[str, Document]]:
        docs = self._data.get(collection, {})
        return [(k, copy.deepcopy(docs[k])) for k in sorted(docs)]

    async def get_document(self, collection: str, key: str) -> Document | None:
        return self._read_document(collection, key)

    async def set_document(self, collection: str, key: str, value: Document) -> None:
        self._data.setdefault(collection, {})[key] = copy.deepcopy(value)
        logger.debug("set_document %s/%s", collection, key)
        await self._publish(collection, key)

    async def update_fields(self, collection: str, key: str, partial: Document) -> None:
        current = self._data.get(collection, {}).get(key)
        if current is None:
            raise DocumentNotFoundError(collection, key)
        # Top-level fields are replaced whole; nested values are never merged.
        for field_name, value in partial.items():
            current[field_name] = copy.deepcopy(value)
        logger.debug("update_fields %s/%s fields=%s", collection, key, sorted(partial))
        await self._publish(collection, key)
