# src/punchlist/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The repository and controller depend on Protocols instead of concrete
implementations, so the document store, identity provider and suggestion
service stay swappable and tests can use fakes.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Awaitable, Protocol

Document = dict[str, Any]
# A schemaless document value, JSON-compatible.

SnapshotCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


class Subscription(Protocol):
    """
    Handle for a live subscription.

    Pushes continue until cancel() is called; cancel() is idempotent.
    Implementations are also context managers that cancel on exit.
    """

    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...

    def __enter__(self) -> "Subscription": ...

    def __exit__(self, *exc: object) -> None: ...


class DocumentStore(Protocol):
    """
    Collection/document key-value store with live snapshots.

    subscribe_collection pushes a list of (key, value) pairs;
    subscribe_document pushes the value or None when it does not exist.
    Both deliver an initial snapshot before returning.
    """

    def set_document(self, collection: str, key: str, value: Document) -> Awaitable[None]: ...

    def update_fields(self, collection: str, key: str, partial: Document) -> Awaitable[None]: ...

    def get_document(self, collection: str, key: str) -> Awaitable[Document | None]: ...

    def subscribe_collection(
            self,
            collection: str,
            on_snapshot: Callable[[list[tuple[str, Document]]], None],
            on_error: ErrorCallback | None = None,
    ) -> Subscription: ...

    def subscribe_document(
            self,
            collection: str,
            key: str,
            on_snapshot: Callable[[Document | None], None],
            on_error: ErrorCallback | None = None,
    ) -> Subscription: ...


@dataclass(frozen=True, slots=True)
class Identity:
    uid: str
    is_anonymous: bool


class IdentityProvider(Protocol):
    @property
    def current(self) -> Identity | None: ...

    def sign_in_anonymous(self) -> Awaitable[Identity]: ...

    def sign_in_with_token(self, token: str) -> Awaitable[Identity]: ...

    def on_auth_state_changed(self, callback: Callable[[Identity | None], None]) -> Subscription: ...


class SuggestionGateway(Protocol):
    """Turns a trade name into suggested task descriptions. Raises SuggestionError."""

    def suggest_tasks(self, trade: str) -> Awaitable[list[str]]: ...


class Notifier(Protocol):
    """User-visible transient notices (info / error)."""

    def notify(self, text: str, level: str = "info") -> None: ...
