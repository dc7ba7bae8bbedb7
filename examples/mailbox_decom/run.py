"""
Mailbox Decommissioning What-If: Terminal Demo
==============================================

WHAT THIS SHOWS:
- A SimulatorSession hosting the reducer, timeline engine and command parser
- Chat-style input: YES to confirm, a scenario number to run, RESET / EXIT
- The timed reveal of consumer systems and business scenarios
- The deterministic agentic review printed when the run completes

RUN:
    python -m examples.mailbox_decom.run
    python -m examples.mailbox_decom.run --script YES 2 --tick-ms 20
    python -m examples.mailbox_decom.run --catalog soap_pilot
"""

import argparse
import asyncio
from typing import List, Optional

from impactsim import CatalogLoader, SimulatorSession, SimulatorState
from impactsim.config import Config
from impactsim.logging_utils import Color, colored


def _print_new_messages(session: SimulatorSession, seen: int) -> int:
    for message in session.messages[seen:]:
        if message.role == "agent":
            print(colored(f"[{message.agent}]", Color.CYAN, bold=True))
            print(message.content)
            print()
    return len(session.messages)


def _progress_listener(previous: SimulatorState, new: SimulatorState, action) -> None:
    if len(new.revealed_systems) > len(previous.revealed_systems):
        print(colored(f"  + system {new.revealed_systems[-1]}", Color.BLUE))
    if len(new.revealed_business_scenarios) > len(previous.revealed_business_scenarios):
        print(colored(f"  + business scenario {new.revealed_business_scenarios[-1]}", Color.BLUE))


async def _read_line(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


async def main(script: Optional[List[str]], catalog_name: Optional[str], tick_ms: int) -> None:
    catalog = CatalogLoader().load(catalog_name) if catalog_name else None

    async with SimulatorSession(
        catalog,
        tick_interval=tick_ms / 1000.0,
        state_listeners=[_progress_listener],
    ) as session:
        session.enter()
        seen = _print_new_messages(session, 0)

        pending = list(script) if script is not None else None
        while session.state.phase != "idle":
            if session.state.phase == "running":
                await session.wait()
                seen = _print_new_messages(session, seen)
                if pending is not None and not pending:
                    break
                continue

            if pending is not None:
                if not pending:
                    break
                text = pending.pop(0)
                print(f"> {text}")
            else:
                try:
                    text = await _read_line("> ")
                except EOFError:
                    break

            session.handle_input(text)
            seen = _print_new_messages(session, seen)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the mailbox decommissioning what-if simulator")
    parser.add_argument(
        "--script",
        nargs="*",
        help="Commands to send instead of reading stdin (e.g. YES 1 RESET 3 EXIT)",
    )
    parser.add_argument("--catalog", help="Catalog name under IMPACTSIM_CATALOG_DIR (default: built-in)")
    parser.add_argument(
        "--tick-ms",
        type=int,
        default=Config.TICK_INTERVAL_MS,
        help="Milliseconds per timeline tick",
    )
    args = parser.parse_args()

    Config.validate()
    asyncio.run(main(args.script, args.catalog, args.tick_ms))
