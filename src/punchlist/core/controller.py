# src/punchlist/core/controller.py

"""
Application controller.

Owns the navigation state (unit list vs. one unit) and the live
subscriptions that feed it. Front-ends call the action methods and re-render
from the controller's attributes whenever a listener fires.

Key invariants:
- writes are never applied locally; the view changes only when the store
  pushes the next snapshot,
- at most one unit-detail subscription is live, and close() cancels all of
  them,
- no action raises: every failure becomes a notice.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import StrEnum

from ..auth.identity import ensure_signed_in
from ..errors import InitializationError, PunchlistError, SuggestionError
from ..units.unit_models import Task, Unit
from ..units.unit_repository import UnitRepository
from .links import build_share_link
from .ports import Identity, IdentityProvider, Notifier, Subscription, SuggestionGateway

logger = logging.getLogger(__name__)

BULK_BUILDINGS = ("BuildingA", "BuildingB", "BuildingC", "BuildingD")
UNITS_PER_BUILDING = 20


class Page(StrEnum):
    HOME = "home"
    UNIT_DETAIL = "unit_detail"


@dataclass(frozen=True, slots=True)
class View:
    page: Page
    unit_id: str | None = None


HOME = View(Page.HOME)


def bulk_unit_names() -> Iterator[tuple[str, str]]:
    """(name, address) for every unit of the 4-building batch, in creation order."""
    for building in BULK_BUILDINGS:
        for i in range(1, UNITS_PER_BUILDING + 1):
            number = f"{i:02d}"
            yield f"{building}-Unit{number}", f"{building} Address, Unit {number}"


class AppController:
    def __init__(
        self,
        *,
        repository: UnitRepository,
        identity_provider: IdentityProvider,
        suggestions: SuggestionGateway,
        notifier: Notifier,
        public_url: str = "",
        auth_token: str | None = None,
    ) -> None:
        self._repo = repository
        self._identity_provider = identity_provider
        self._suggestions = suggestions
        self._notifier = notifier
        self._public_url = public_url
        self._auth_token = auth_token

        self.view: View = HOME
        self.identity: Identity | None = None
        self.units: list[Unit] = []
        self.unit: Unit | None = None
        self.unit_loading = False
        self.selected_trade: str | None = None
        self.is_generating_tasks = False

        self._auth_sub: Subscription | None = None
        self._units_sub: Subscription | None = None
        self._unit_sub: Subscription | None = None
        self._listeners: list[Callable[[AppController], None]] = []
        self._closed = False

    # ---- lifecycle ----

    async def start(self, initial_unit_id: str | None = None) -> bool:
        """
        Sign in, subscribe to the unit list and pick the initial view.

        With initial_unit_id (from a shareable link) the controller starts in
        the detail view for that unit instead of the list. Starting twice is a
        no-op; a closed controller cannot be restarted.
        """
        if self._closed:
            logger.warning("start() called on a closed controller")
            return False
        if self._units_sub is not None:
            logger.debug("Controller already started")
            return True

        try:
            self.identity = await ensure_signed_in(self._identity_provider, self._auth_token)
        except InitializationError as e:
            logger.error("Sign-in failed: %s", e)
            self._notify(str(e), "error")
            return False

        self._auth_sub = self._identity_provider.on_auth_state_changed(self._on_auth_changed)

        try:
            self._units_sub = self._repo.list_units(self._on_units, self._on_units_error)
        except Exception as e:
            logger.exception("Unit list subscription failed")
            self._auth_sub.cancel()
            self._auth_sub = None
            self._notify(f"Store initialization failed: {e}", "error")
            return False

        if initial_unit_id:
            self._enter_unit(initial_unit_id)
        self._render()
        logger.info("Controller started view=%s", self.view)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for sub in (self._unit_sub, self._units_sub, self._auth_sub):
            if sub is not None:
                sub.cancel()
        self._unit_sub = self._units_sub = self._auth_sub = None
        logger.debug("Controller closed")

    async def __aenter__(self) -> AppController:
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.close()

    def add_listener(self, callback: Callable[[AppController], None]) -> Callable[[], None]:
        """Register a re-render callback; returns a function that removes it."""
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    @property
    def ready(self) -> bool:
        return self.identity is not None and not self._closed

    # ---- navigation ----

    def open_unit(self, unit_id: str) -> bool:
        if not self._require_ready():
            return False
        unit_id = (unit_id or "").strip()
        if not unit_id:
            self._notify("Unit name cannot be empty.", "error")
            return False
        self._enter_unit(unit_id)
        self._render()
        return True

    def back(self) -> None:
        self._cancel_unit_sub()
        self.view = HOME
        self.unit = None
        self.unit_loading = False
        self.selected_trade = None
        self._render()

    def select_trade(self, trade: str) -> bool:
        if self.unit is None:
            self._notify("Open a unit first.", "error")
            return False
        if trade not in self.unit.trades:
            self._notify(f'Unknown trade "{trade}".', "error")
            return False
        self.selected_trade = trade
        self._render()
        return True

    def current_tasks(self) -> list[Task]:
        if self.unit is None or self.selected_trade is None:
            return []
        return self.unit.tasks_for(self.selected_trade)

    def share_link(self, unit_id: str | None = None) -> str | None:
        unit_id = unit_id or self.view.unit_id
        if not unit_id:
            self._notify("No unit selected.", "error")
            return None
        link = build_share_link(self._public_url, unit_id)
        self._notify(f"Share link for {unit_id}: {link}")
        return link

    # ---- unit list actions ----

    async def add_unit(self, name: str, address: str) -> bool:
        if not self._require_ready():
            return False
        if not name.strip() or not address.strip():
            self._notify("Unit name and address cannot be empty.", "error")
            return False
        return await self._create_unit(name, address, announce=True)

    async def generate_buildings(self) -> int:
        """
        Create the 4 x 20 demo units in order.

        Stops at the first failure and returns how many were created.
        """
        if not self._require_ready():
            return 0

        self._notify("Generating units, please wait...")
        created = 0
        for name, address in bulk_unit_names():
            if not await self._create_unit(name, address, announce=False):
                self._notify(
                    f"Failed to add unit {name}. Stopping batch generation ({created} units added).",
                    "error",
                )
                return created
            created += 1

        self._notify(f"Successfully added {created} units!")
        return created

    # ---- unit detail actions ----

    async def toggle_task(self, index: int, trade: str | None = None) -> bool:
        """Flip one task using the latest snapshot of the open unit."""
        unit = self._require_unit()
        if unit is None:
            return False
        trade = trade or self.selected_trade
        if not trade:
            self._notify("Please select a trade first.", "error")
            return False

        tasks = unit.tasks_for(trade)
        if index < 0 or index >= len(tasks):
            self._notify(f"No task #{index + 1} in {trade}.", "error")
            return False

        try:
            await self._repo.set_task_completed(unit.name, trade, index, not tasks[index].completed)
        except PunchlistError as e:
            self._notify(f"Error updating task: {e}", "error")
            return False
        except Exception as e:
            logger.exception("toggle_task failed unit=%s trade=%s index=%s", unit.name, trade, index)
            self._notify(f"Error updating task: {e}", "error")
            return False

        self._notify(f"Task updated for {trade}!")
        return True

    async def add_task(self, text: str) -> bool:
        unit = self._require_unit()
        if unit is None:
            return False
        trade = self.selected_trade
        if not trade:
            self._notify("Please select a trade first.", "error")
            return False
        if not text or not text.strip():
            return False

        try:
            await self._repo.add_task(unit.name, trade, text)
        except PunchlistError as e:
            self._notify(f"Error adding task: {e}", "error")
            return False
        except Exception as e:
            logger.exception("add_task failed unit=%s trade=%s", unit.name, trade)
            self._notify(f"Error adding task: {e}", "error")
            return False

        self._notify(f'Task "{text}" added to {trade}!')
        return True

    async def suggest_tasks(self) -> list[Task]:
        """Ask the suggestion gateway for tasks and append the new ones to the selected trade."""
        unit = self.unit
        trade = self.selected_trade
        if not self.ready or unit is None or not trade:
            self._notify("Please select a trade and ensure unit data is loaded.", "error")
            return []
        if self.is_generating_tasks:
            self._notify("Already generating tasks, please wait.", "error")
            return []

        self.is_generating_tasks = True
        self._render()
        self._notify(f"Generating tasks for {trade}...")
        try:
            suggestions = await self._suggestions.suggest_tasks(trade)
            added = await self._repo.append_suggested_tasks(unit.name, trade, suggestions)
        except SuggestionError as e:
            logger.info("Suggestion failed trade=%s: %s", trade, e)
            self._notify(str(e), "error")
            return []
        except PunchlistError as e:
            self._notify(f"Error suggesting tasks: {e}", "error")
            return []
        except Exception as e:
            logger.exception("suggest_tasks failed unit=%s trade=%s", unit.name, trade)
            self._notify(f"Error suggesting tasks: {e}", "error")
            return []
        finally:
            self.is_generating_tasks = False
            self._render()

        if added:
            self._notify(f"Suggested tasks added for {trade}!")
        else:
            self._notify("No new unique tasks were suggested.")
        return added

    # ---- internals ----

    def _enter_unit(self, unit_id: str) -> None:
        self._cancel_unit_sub()
        self.view = View(Page.UNIT_DETAIL, unit_id)
        self.unit = None
        self.selected_trade = None
        self.unit_loading = True
        try:
            self._unit_sub = self._repo.get_unit(unit_id, self._on_unit, self._on_unit_error)
        except Exception as e:
            logger.exception("Unit subscription failed unit=%s", unit_id)
            self.unit_loading = False
            self._notify(f"Error fetching unit data: {e}", "error")

    def _cancel_unit_sub(self) -> None:
        if self._unit_sub is not None:
            self._unit_sub.cancel()
            self._unit_sub = None

    async def _create_unit(self, name: str, address: str, *, announce: bool) -> bool:
        try:
            await self._repo.create_unit(name, address)
        except PunchlistError as e:
            self._notify(f"Error adding unit: {e}", "error")
            return False
        except Exception as e:
            logger.exception("create_unit failed name=%s", name)
            self._notify(f"Error adding unit: {e}", "error")
            return False
        if announce:
            self._notify(f'Unit "{name}" added successfully!')
        return True

    def _require_ready(self) -> bool:
        if not self.ready:
            self._notify("Store not initialized. Please wait.", "error")
            return False
        return True

    def _require_unit(self) -> Unit | None:
        if not self._require_ready():
            return None
        if self.unit is None:
            self._notify("Unit data is not loaded.", "error")
            return None
        return self.unit

    def _on_auth_changed(self, identity: Identity | None) -> None:
        self.identity = identity
        if identity is None:
            logger.warning("Signed out; data actions are disabled until sign-in.")

    def _on_units(self, units: list[Unit]) -> None:
        self.units = units
        logger.debug("Units snapshot count=%d", len(units))
        self._render()

    def _on_units_error(self, err: Exception) -> None:
        self._notify(f"Error fetching units: {err}", "error")

    def _on_unit(self, unit: Unit | None) -> None:
        self.unit_loading = False
        self.unit = unit
        if unit is None:
            self.selected_trade = None
            self._notify(f'Unit "{self.view.unit_id}" not found.', "error")
        elif self.selected_trade is None and unit.trades:
            self.selected_trade = unit.trade_names()[0]
        self._render()

    def _on_unit_error(self, err: Exception) -> None:
        self.unit_loading = False
        self._notify(f"Error fetching unit data: {err}", "error")
        self._render()

    def _notify(self, text: str, level: str = "info") -> None:
        try:
            self._notifier.notify(text, level)
        except Exception:
            logger.exception("Notifier crashed")

    def _render(self) -> None:
        for cb in list(self._listeners):
            try:
                cb(self)
            except Exception:
                logger.exception("Controller listener crashed")
