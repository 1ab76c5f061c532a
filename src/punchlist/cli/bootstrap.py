# src/punchlist/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/identity/suggestions/controller).
"""

from __future__ import annotations

import contextlib
import logging

from ..auth.identity import LocalIdentityProvider
from ..config import get_settings, units_collection_path
from ..core.controller import AppController
from ..core.ports import DocumentStore, Notifier, SuggestionGateway
from ..core.state import AppState
from ..errors import InitializationError
from ..llm.client import OpenRouterSuggestionGateway, friendly_llm_error_message
from ..llm.offline import OfflineSuggestionGateway
from ..llm.suggestions import GeminiSuggestionGateway
from ..store.memory import MemoryDocumentStore
from ..store.sqlite_store import SqliteDocumentStore
from ..units.unit_repository import UnitRepository

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_store(settings) -> DocumentStore:
    backend = str(getattr(settings, "store_backend", "memory")).lower()
    if backend == "memory":
        return MemoryDocumentStore()
    if backend == "sqlite":
        try:
            return SqliteDocumentStore(
                settings.store_db_path,
                poll_interval=getattr(settings, "store_poll_seconds", 0.5),
            )
        except Exception as e:
            raise InitializationError(f"Document store initialization failed: {e}") from e
    raise InitializationError(f"Unknown store backend: {backend!r} (expected 'memory' or 'sqlite').")


def build_suggestion_gateway(settings) -> SuggestionGateway:
    """
    Pick the suggestion provider from settings.

    A provider that is selected but not configured (e.g. missing API key)
    falls back to the offline gateway, with a warning.
    """
    provider = str(getattr(settings, "suggest_provider", "gemini")).lower()
    timeout = getattr(settings, "suggest_timeout_seconds", None)

    if provider == "offline":
        return OfflineSuggestionGateway()

    try:
        if provider == "gemini":
            return GeminiSuggestionGateway(
                api_key=settings.gemini_api_key or "",
                base_url=settings.gemini_base_url,
                model=settings.gemini_model,
                timeout=timeout,
            )
        if provider == "openrouter":
            return OpenRouterSuggestionGateway(
                api_key=settings.openrouter_api_key,
                base_url=settings.openrouter_base_url,
                model=settings.openrouter_model,
                extra_headers=settings.extra_headers,
                timeout=timeout,
            )
    except RuntimeError as e:
        logger.warning("%s Using offline suggestions (provider=%r).", friendly_llm_error_message(e), provider)
        return OfflineSuggestionGateway()

    logger.warning("Unknown suggestion provider %r; using offline suggestions.", provider)
    return OfflineSuggestionGateway()


def create_initial_state(*, notifier: Notifier, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = build_store(settings)
    identity_provider = LocalIdentityProvider()
    repository = UnitRepository(store, units_collection_path(settings.app_id))
    suggestions = build_suggestion_gateway(settings)

    controller = AppController(
        repository=repository,
        identity_provider=identity_provider,
        suggestions=suggestions,
        notifier=notifier,
        public_url=settings.public_url,
        auth_token=settings.auth_token,
    )

    return AppState(
        settings=settings,
        store=store,
        identity_provider=identity_provider,
        repository=repository,
        suggestions=suggestions,
        notifier=notifier,
        controller=controller,
    )


async def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    state.controller.close()

    aclose = getattr(state.suggestions, "aclose", None)
    if aclose is not None:
        try:
            await aclose()
        except Exception:
            logger.debug("Suggestion gateway close failed.", exc_info=True)

    close = getattr(state.store, "close", None)
    if close is not None:
        with contextlib.suppress(Exception):
            close()
