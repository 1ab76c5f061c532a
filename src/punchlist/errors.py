# src/punchlist/errors.py

"""
Error taxonomy.

Lower layers (store, repository, suggestion gateways) raise these; the
controller catches them and turns them into user-visible notices.
"""

from __future__ import annotations


class PunchlistError(Exception):
    """Base class for all recoverable punch-list errors."""


class InitializationError(PunchlistError):
    """Identity or store setup failed. Fatal to every later data access."""


class StoreWriteError(PunchlistError):
    """A document write (create/update) did not go through."""


class UnitExistsError(StoreWriteError):
    def __init__(self, unit_name: str) -> None:
        super().__init__(f'Unit "{unit_name}" already exists.')
        self.unit_name = unit_name


class DocumentNotFoundError(PunchlistError):
    """Raised by a document store when updating a missing document."""

    def __init__(self, collection: str, key: str) -> None:
        super().__init__(f"No document {key!r} in {collection!r}.")
        self.collection = collection
        self.key = key


class UnitNotFoundError(PunchlistError):
    def __init__(self, unit_name: str) -> None:
        super().__init__(f'Unit "{unit_name}" not found.')
        self.unit_name = unit_name


class StaleTaskError(PunchlistError):
    """The trade or task index no longer exists at write time."""

    def __init__(self, unit_name: str, trade: str, index: int | None = None) -> None:
        if index is None:
            msg = f'Trade "{trade}" no longer exists on unit "{unit_name}".'
        else:
            msg = f'Task #{index} of "{trade}" no longer exists on unit "{unit_name}".'
        super().__init__(msg)
        self.unit_name = unit_name
        self.trade = trade
        self.index = index


class SuggestionError(PunchlistError):
    """The task suggestion service failed or returned something unusable."""


class AuthenticationError(InitializationError):
    """Sign-in was rejected."""
