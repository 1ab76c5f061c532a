# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from punchlist.auth.identity import LocalIdentityProvider
from punchlist.config import units_collection_path
from punchlist.core.controller import AppController
from punchlist.units.unit_repository import UnitRepository

from .fakes import FakeNotifier, FakeSuggestionGateway, FlakyStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="punchlist-test",
        app_id="test-app",
        store_backend="memory",
        data_dir=tmp_path,
        store_db_path=tmp_path / "documents.sqlite3",
        auth_token=None,
        suggest_provider="offline",
        suggest_timeout_seconds=None,
        public_url="https://punch.example.com/app",
    )


@pytest.fixture()
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture()
def repo(store: FlakyStore) -> UnitRepository:
    return UnitRepository(store, units_collection_path("test-app"))


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def gateway() -> FakeSuggestionGateway:
    return FakeSuggestionGateway()


@pytest.fixture()
def controller(repo: UnitRepository, notifier: FakeNotifier, gateway: FakeSuggestionGateway) -> AppController:
    """Controller wired to a memory store and fakes; call `await controller.start()` in the test."""
    return AppController(
        repository=repo,
        identity_provider=LocalIdentityProvider(),
        suggestions=gateway,
        notifier=notifier,
        public_url="https://punch.example.com/app",
    )
