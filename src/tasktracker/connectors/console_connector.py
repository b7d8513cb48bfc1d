# src/tasktracker/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.persona import ASSISTANT_NAME
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


async def run_console_loop(state: AppState) -> None:
    """
    Interactive loop: slash commands drive the board, anything else goes to the assistant.

    input() runs in a worker thread so the event loop stays free.
    """
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /help for commands, /exit to quit. Anything else is a question.")
    _print_ts(f"<<< {ASSISTANT_NAME}: {state.assistant.transcript[0].text}")

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> You: ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            cmd_response = await command_registry.handle(state, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            _print_ts(cmd_response)
            continue

        _print_ts(f"[{ASSISTANT_NAME}] thinking...")
        try:
            entry = await state.assistant.ask(user_input)
        except Exception:
            logger.exception("Console chat handler crashed.")
            _print_ts(f"<<< {ASSISTANT_NAME}: Internal error while answering. Please try again.")
            continue
        if entry is not None:
            _print_ts(f"<<< {ASSISTANT_NAME}: {entry.text}")

    logger.info("Console connector finished.")
