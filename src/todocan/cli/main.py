# src/todocan/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either:
- serves the HTTP API with uvicorn (default, or `todocan serve`),
- runs the interactive task list for one user (`todocan console --user ID`).
"""

from __future__ import annotations

import argparse
import asyncio
import logging

import uvicorn

from ..api.app import create_app
from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="todocan", description="Personal task list API.")
    parser.add_argument("--host", default=settings.http_host)
    parser.add_argument("--port", type=int, default=settings.http_port)

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("serve", help="serve the HTTP API (default)")
    console = sub.add_parser("console", help="interactive task list for one user")
    console.add_argument("--user", required=True, help="user id whose tasks to open")
    return parser.parse_args(argv)


async def _console(state: AppState, user_id: str) -> None:
    try:
        await run_console_loop(state, user_id)
    finally:
        await state.aclose()


def main(argv: list[str] | None = None) -> None:
    settings = get_settings()
    args = _parse_args(argv)

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    if args.command == "console":
        logger.info("Starting %s console for user=%s...", settings.app_name, args.user)
        asyncio.run(_console(state, args.user))
        logger.info("Bye.")
        return

    logger.info("Starting %s on %s:%s...", settings.app_name, args.host, args.port)
    app = create_app(state)

    # log_config=None keeps the handlers installed by setup_logging.
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    logger.info("Bye.")


if __name__ == "__main__":
    main()
