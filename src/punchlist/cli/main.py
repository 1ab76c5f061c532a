# src/punchlist/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, signs in, then runs the console REPL.
A unit id (or a shareable link carrying one) can be passed to start directly
in that unit's detail view.
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..core.links import unit_id_from_link
from ..errors import InitializationError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="punchlist", description="Construction punch-list tracker (console).")
    g = p.add_mutually_exclusive_group()
    g.add_argument("--unit-id", help="Open this unit directly.")
    g.add_argument("--link", help="Shareable link (…?unitId=<name>) to open directly.")
    return p.parse_args(argv)


async def _run(settings, initial_unit_id: str | None) -> int:
    notifier = ConsoleNotifier()
    try:
        state = create_initial_state(notifier=notifier, settings=settings)
    except InitializationError as e:
        logger.error("Initialization failed: %s", e)
        notifier.notify(str(e), "error")
        return 1

    try:
        if not await state.controller.start(initial_unit_id=initial_unit_id):
            return 1
        await run_console_loop(state)
        return 0
    finally:
        await shutdown_state(state)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    file_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, file_level=file_level)

    logger.info("Starting %s...", settings.app_name)

    initial_unit_id = args.unit_id or unit_id_from_link(args.link)

    try:
        code = asyncio.run(_run(settings, initial_unit_id))
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt, exiting.")
        print()
        code = 0

    logger.info("Bye.")
    return code


if __name__ == "__main__":
    raise SystemExit(main())
