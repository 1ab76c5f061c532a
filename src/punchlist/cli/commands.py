# src/punchlist/cli/commands.py

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable

from ..core.controller import BULK_BUILDINGS, UNITS_PER_BUILDING, AppController, Page
from ..core.state import AppState
from ..units.unit_models import Unit

CommandResult = str | None
CommandHandler = Callable[[AppState, list[str]], CommandResult | Awaitable[CommandResult]]


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /units, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be plain functions or coroutines.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        result = handler(state, args)
        if inspect.isawaitable(result):
            result = await result
        return result or ""

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- rendering ----


def _progress(unit: Unit) -> str:
    total = sum(len(tasks) for tasks in unit.trades.values())
    done = sum(1 for tasks in unit.trades.values() for t in tasks if t.completed)
    return f"{done}/{total}"


def render_home(ctrl: AppController) -> str:
    if not ctrl.units:
        return "No units yet. Use /add <name> | <address> or /generate."
    lines = [f"Units ({len(ctrl.units)}):"]
    for u in ctrl.units:
        lines.append(f"  {u.name}  [{u.status}]  {u.address}  tasks done {_progress(u)}")
    return "\n".join(lines)


def render_unit(ctrl: AppController) -> str:
    if ctrl.unit_loading:
        return "Loading unit..."
    unit = ctrl.unit
    if unit is None:
        return f"Unit {ctrl.view.unit_id!r} is not available. Use /back to return to the list."

    lines = [f"{unit.name} - {unit.address} [{unit.status}]"]
    trades = unit.trade_names()
    marked = [f"*{t}*" if t == ctrl.selected_trade else t for t in trades]
    lines.append("Trades: " + (", ".join(marked) if marked else "(none)"))
    if ctrl.selected_trade:
        tasks = ctrl.current_tasks()
        if not tasks:
            lines.append(f"  No tasks for {ctrl.selected_trade}.")
        for i, t in enumerate(tasks, start=1):
            box = "x" if t.completed else " "
            lines.append(f"  {i}. [{box}] {t.task}")
    return "\n".join(lines)


def render_view(ctrl: AppController) -> str:
    if ctrl.view.page == Page.UNIT_DETAIL:
        return render_unit(ctrl)
    return render_home(ctrl)


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    ctrl = state.controller
    who = ctrl.identity.uid if ctrl.identity else "(signed out)"
    view = ctrl.view.page.value + (f" {ctrl.view.unit_id}" if ctrl.view.unit_id else "")
    provider = getattr(state.settings, "suggest_provider", "?")
    return (
        "Status:\n"
        f"  Identity: {who}\n"
        f"  View: {view}\n"
        f"  Units: {len(ctrl.units)}\n"
        f"  Suggestions: {provider} ({state.suggestions.__class__.__name__})"
    )


def cmd_units(state: AppState, args: list[str]) -> str:
    return render_home(state.controller)


async def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <name> | <address>"""
    raw = " ".join(args)
    if "|" not in raw:
        return "Usage: /add <name> | <address>"
    name, address = (p.strip() for p in raw.split("|", 1))
    await state.controller.add_unit(name, address)
    return ""


async def cmd_generate(state: AppState, args: list[str]) -> str:
    total = len(BULK_BUILDINGS) * UNITS_PER_BUILDING
    if not args or args[0].lower() not in ("yes", "y"):
        return (
            f"This will add {total} new units ({len(BULK_BUILDINGS)} buildings x {UNITS_PER_BUILDING} units). "
            "Run /generate yes to continue."
        )
    await state.controller.generate_buildings()
    return ""


def cmd_open(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /open <unit name>"
    if not state.controller.open_unit(" ".join(args)):
        return ""
    return render_unit(state.controller)


def cmd_back(state: AppState, args: list[str]) -> str:
    state.controller.back()
    return render_home(state.controller)


def cmd_trade(state: AppState, args: list[str]) -> str:
    ctrl = state.controller
    if args and not ctrl.select_trade(" ".join(args)):
        return ""
    return render_unit(ctrl) if ctrl.view.page == Page.UNIT_DETAIL else "Open a unit first."


def cmd_show(state: AppState, args: list[str]) -> str:
    return render_view(state.controller)


async def cmd_toggle(state: AppState, args: list[str]) -> str:
    """/toggle <n>: task numbers are 1-based as shown by /show."""
    if len(args) != 1 or not args[0].isdigit() or int(args[0]) < 1:
        return "Usage: /toggle <task number>"
    if await state.controller.toggle_task(int(args[0]) - 1):
        return render_unit(state.controller)
    return ""


async def cmd_task(state: AppState, args: list[str]) -> str:
    text = " ".join(args).strip()
    if not text:
        return "Usage: /task <description>"
    if await state.controller.add_task(text):
        return render_unit(state.controller)
    return ""


async def cmd_suggest(state: AppState, args: list[str]) -> str:
    if await state.controller.suggest_tasks():
        return render_unit(state.controller)
    return ""


def cmd_link(state: AppState, args: list[str]) -> str:
    state.controller.share_link(" ".join(args) or None)
    return ""


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show identity, current view and providers.")
registry.register("units", cmd_units, help_text="List all units.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add one unit: /add <name> | <address>.")
registry.register("generate", cmd_generate, help_text="Generate 4 buildings x 20 units: /generate yes.")
registry.register("open", cmd_open, help_text="Open a unit: /open <name>.")
registry.register("back", cmd_back, help_text="Back to the unit list.")
registry.register("trade", cmd_trade, help_text="Show trades or select one: /trade [name].")
registry.register("show", cmd_show, help_text="Redraw the current view.")
registry.register("toggle", cmd_toggle, help_text="Toggle a task of the selected trade: /toggle <n>.")
registry.register("task", cmd_task, help_text="Add a task to the selected trade: /task <text>.")
registry.register("suggest", cmd_suggest, help_text="Suggest tasks for the selected trade.")
registry.register("link", cmd_link, help_text="Shareable link for a unit: /link [name].")
