# src/punchlist/connectors/console_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterator
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.commands import render_view
from ..core.controller import AppController
from ..core.state import AppState

logger = logging.getLogger(__name__)

PROMPT = "punchlist> "


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleNotifier:
    """Prints controller notices as timestamped lines."""

    def notify(self, text: str, level: str = "info") -> None:
        tag = "ERROR" if level == "error" else "INFO"
        _print_ts(f"[{tag}] {text}")


class ConsoleRenderer:
    """
    Controller listener that redraws the current view on store pushes.

    While a command runs its own reply is the redraw, so pushes are not
    printed then.
    """

    def __init__(self) -> None:
        self._in_command = False

    def __call__(self, ctrl: AppController) -> None:
        if self._in_command:
            return
        print("\n" + render_view(ctrl), flush=True)
        print(PROMPT, end="", flush=True)

    @contextlib.contextmanager
    def command(self) -> Iterator[None]:
        self._in_command = True
        try:
            yield
        finally:
            self._in_command = False


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")
    print(render_view(state.controller), flush=True)

    renderer = ConsoleRenderer()
    remove_listener = state.controller.add_listener(renderer)
    try:
        while True:
            try:
                # input() blocks; keep it off the event loop so store pushes still run.
                user_input = (await asyncio.to_thread(input, PROMPT)).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            with renderer.command():
                try:
                    response = await command_registry.handle(state, user_input)
                except Exception:
                    logger.exception("Command handler crashed.")
                    response = "Internal error while handling a command."

            if response is None:
                print("Commands start with '/'. Use /help to list them.")
            elif response:
                print(response, flush=True)
    finally:
        remove_listener()

    logger.info("Console connector finished.")
