# src/punchlist/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..units.unit_repository import UnitRepository
from .controller import AppController
from .ports import DocumentStore, IdentityProvider, Notifier, SuggestionGateway


@dataclass
class AppState:
    """Everything a front-end needs, wired once by cli.bootstrap."""

    # Settings (or a SimpleNamespace in tests).
    settings: Any

    store: DocumentStore
    identity_provider: IdentityProvider
    repository: UnitRepository
    suggestions: SuggestionGateway
    notifier: Notifier
    controller: AppController
