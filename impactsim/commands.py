"""
Chat command parser for the impact simulator.

``parse_command`` maps free-text chat input (or a button label) to a simulator
action, validated against the current phase. It is a pure classification of
``(input, state)``: it never dispatches, never mutates the state it is given,
and never reads anything but its arguments and the read-only catalog.

Input legality lives here, not in the reducer. The reducer only ever sees
actions this parser accepted (plus the scheduler's own tick actions).
"""

from typing import List, Optional

from .catalog import DEFAULT_CATALOG
from .schemas import (
    BackAction,
    ChooseScenarioAction,
    ConfirmYesAction,
    ExitAction,
    ParseResult,
    ResetAction,
    ScenarioCatalog,
    SimulatorState,
)


EXIT_TOKENS = frozenset({"EXIT", "QUIT", "STOP"})
RESET_TOKENS = frozenset({"RESET", "RESTART"})
CONFIRM_TOKENS = frozenset({"YES", "Y", "NEXT", "CONTINUE", "START"})
BACK_TOKENS = frozenset({"BACK"})


def _reject(message: str) -> ParseResult:
    return ParseResult(action=None, message=message)


def _numbers_phrase(count: int) -> str:
    """Render ``1, 2, 3, or 4`` style lists for rejection messages."""
    numbers = [str(i) for i in range(1, count + 1)]
    if len(numbers) <= 1:
        return "".join(numbers)
    if len(numbers) == 2:
        return f"{numbers[0]} or {numbers[1]}"
    return f"{', '.join(numbers[:-1])}, or {numbers[-1]}"


def scenario_menu(catalog: Optional[ScenarioCatalog] = None) -> List[str]:
    """Return the numbered scenario menu lines shown in await_choice."""
    catalog = catalog or DEFAULT_CATALOG
    return [
        f"  {index}. {scenario.label} ({scenario.risk_level.upper()} impact)"
        for index, scenario in enumerate(catalog.scenarios, start=1)
    ]


def parse_command(
    user_input: str,
    state: SimulatorState,
    catalog: Optional[ScenarioCatalog] = None,
) -> ParseResult:
    """Translate ``user_input`` into an action or an explanatory message.

    Global commands (any phase, case-insensitive):
    - EXIT / QUIT / STOP -> EXIT
    - RESET / RESTART    -> RESET

    Phase-gated commands:
    - await_confirm: YES / Y / NEXT / CONTINUE / START -> CONFIRM_YES
    - await_choice: a scenario number 1..N -> CHOOSE_SCENARIO
    - running: nothing (wait or EXIT)
    - done: BACK -> BACK; otherwise directs the user to RESET / EXIT
    - idle: diagnostic message (the host only routes input here when active)

    Returns:
        ParseResult with exactly one of ``action`` / ``message`` set
    """
    catalog = catalog or DEFAULT_CATALOG
    token = user_input.strip().upper()

    if token in EXIT_TOKENS:
        return ParseResult(action=ExitAction())

    if token in RESET_TOKENS:
        return ParseResult(action=ResetAction())

    phase = state.phase

    if phase == "idle":
        return _reject(
            "Simulator is not active. This should not happen; please report this issue."
        )

    if phase == "await_confirm":
        if token in CONFIRM_TOKENS:
            return ParseResult(action=ConfirmYesAction())
        return _reject('Invalid input. Please type "YES" to continue, or "EXIT" to cancel.')

    if phase == "await_choice":
        count = len(catalog.scenarios)
        valid = _numbers_phrase(count)
        # ASCII digits only; isdecimal() alone also admits fullwidth and other scripts
        if token.isascii() and token.isdecimal():
            digits = token.lstrip("0")
            # Bounded before int(), which refuses very long digit strings
            if len(digits) > len(str(count)):
                return _reject(f"Invalid scenario number. Please choose {valid}.")
            index = int(digits or "0")
            if 1 <= index <= count:
                scenario = catalog.scenarios[index - 1]
                return ParseResult(action=ChooseScenarioAction(scenario_id=scenario.id))
            return _reject(f"Invalid scenario number. Please choose {valid}.")
        return _reject(
            f'Invalid input. Please type a scenario number: {valid}. Or type "EXIT" to cancel.'
        )

    if phase == "running":
        return _reject(
            'Simulation is running. Please wait for it to complete, or type "EXIT" to cancel.'
        )

    if phase == "done":
        if token in BACK_TOKENS:
            return ParseResult(action=BackAction())
        return _reject(
            'Simulation complete. Type "RESET" to run another simulation, '
            'or "EXIT" to close the simulator.'
        )

    return _reject('Unknown simulator state. Please type "EXIT" to close.')
