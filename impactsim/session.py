"""
Reference host for the impact simulator.

SimulatorSession wires the pure pieces together the way a chat UI would:
- owns the SimulatorState and is its only writer (through ``dispatch``)
- re-syncs the timeline engine after every dispatch
- routes chat input through the command parser
- collects chat messages (user input, simulator replies, completion notices)

All dependencies are injected or defaulted; no file I/O, no network.
"""

from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from .catalog import DEFAULT_CATALOG, heatmap_for_scenario
from .commands import parse_command, scenario_menu
from .engine import TimelineEngine
from .logging_utils import LOG_TAG_DETERMINISTIC, LOG_TAG_ERROR, log_deterministic, log_error, log_trace
from .reducer import get_initial_state, reduce
from .review import generate_impact_synthesis
from .schemas import (
    ConsumerSystem,
    ExitAction,
    ParseResult,
    RiskColor,
    ScenarioCatalog,
    SimulatorAction,
    SimulatorState,
    StartAction,
)


AGENT_NAME = "Impact Simulator"

StateListener = Callable[[SimulatorState, SimulatorState, SimulatorAction], None]


class ChatMessage(BaseModel):
    """One line of the host's chat transcript."""

    role: str = Field(..., description="'user' or 'agent'")
    content: str
    agent: Optional[str] = Field(None, description="Agent display name for agent messages")


class SimulatorSession:
    """
    Chat-style host for one simulator instance.

    Usage:
        async with SimulatorSession() as session:
            session.enter()
            session.handle_input("YES")
            session.handle_input("1")
            await session.wait()
            print(session.messages[-1].content)
    """

    def __init__(
        self,
        catalog: Optional[ScenarioCatalog] = None,
        *,
        tick_interval: Optional[float] = None,
        autostart: bool = True,
        state_listeners: Optional[List[StateListener]] = None,
    ):
        """Initialize the session.

        Args:
            catalog: Scenario catalog (defaults to the built-in one)
            tick_interval: Seconds per virtual tick for the engine
            autostart: Passed to TimelineEngine; False means drive with step()
            state_listeners: Optional callables invoked after each state change
                with (previous_state, new_state, action)
        """
        self.catalog = catalog or DEFAULT_CATALOG
        self.state: SimulatorState = get_initial_state()
        self.messages: List[ChatMessage] = []
        self.state_listeners = state_listeners or []
        self.completions = 0

        self.engine = TimelineEngine(
            self.dispatch,
            self._on_complete,
            tick_interval=tick_interval,
            catalog=self.catalog,
            autostart=autostart,
        )

    # ------------------------------------------------------------------
    # State ownership
    # ------------------------------------------------------------------

    def dispatch(self, action: SimulatorAction) -> bool:
        """Apply ``action`` through the reducer and re-sync the engine.

        Returns:
            True when the reducer produced a new state, False for a no-op
        """
        previous = self.state
        self.state = reduce(previous, action)

        if self.state is previous:
            # Stale or out-of-phase action; expected around cancellation
            log_trace(f"  {LOG_TAG_DETERMINISTIC} [Session] Ignored {action.type} in phase {previous.phase}")
        else:
            if self.state.phase != previous.phase:
                log_deterministic(
                    f"  {LOG_TAG_DETERMINISTIC} [Session] {previous.phase} -> {self.state.phase} ({action.type})"
                )
            for listener in self.state_listeners:
                try:
                    listener(previous, self.state, action)
                except Exception as exc:  # pragma: no cover - diagnostic hook
                    log_error(f"  {LOG_TAG_ERROR} [Session] Listener failed: {exc}")

        self.engine.sync(
            active=self.state.active,
            phase=self.state.phase,
            selected_scenario_id=self.state.selected_scenario_id,
        )
        return self.state is not previous

    # ------------------------------------------------------------------
    # Host entry points
    # ------------------------------------------------------------------

    def enter(self) -> bool:
        """Open the simulator (the host's "Run Impact Simulator" button)."""
        if not self.dispatch(StartAction()):
            return False
        self._say(
            "**Impact Simulator Initialized**\n\n"
            "This is a deterministic what-if simulation of mailbox decommissioning.\n\n"
            "Type **YES** to confirm and proceed."
        )
        return True

    def exit(self) -> bool:
        """Close the simulator and stop any running animation."""
        if not self.dispatch(ExitAction()):
            return False
        self._say("Impact Simulator exited.")
        return True

    def handle_input(self, user_input: str) -> ParseResult:
        """Route one chat message through the parser and dispatch the result."""
        self.messages.append(ChatMessage(role="user", content=user_input))
        result = parse_command(user_input, self.state, self.catalog)

        if result.action is None:
            self._say(result.message or "")
            return result

        action = result.action
        if action.type == "EXIT":
            self.exit()
            return result

        if not self.dispatch(action):
            return result

        if action.type == "CONFIRM_YES":
            self._say(self._menu_text("Simulation confirmed."))
        elif action.type in ("RESET", "BACK"):
            self._say(self._menu_text("Simulator reset." if action.type == "RESET" else "Back to scenario selection."))
        elif action.type == "CHOOSE_SCENARIO":
            scenario = self.catalog.get_scenario(action.scenario_id)
            label = scenario.label if scenario else action.scenario_id
            self._say(f"Scenario locked: **{label}**. Running impact analysis...")
        return result

    async def wait(self) -> None:
        """Wait for the current timeline run to finish."""
        await self.engine.join()

    # ------------------------------------------------------------------
    # Read helpers for renderers
    # ------------------------------------------------------------------

    def revealed_systems(self) -> List[ConsumerSystem]:
        """Consumer systems revealed so far, in reveal order."""
        systems = []
        for system_id in self.state.revealed_systems:
            system = self.catalog.get_system(system_id)
            if system is not None:
                systems.append(system)
        return systems

    def heatmap(self) -> Dict[str, RiskColor]:
        """Heatmap colours for the selected scenario (empty before selection)."""
        if not self.state.selected_scenario_id:
            return {}
        return heatmap_for_scenario(self.state.selected_scenario_id, self.catalog)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _say(self, content: str) -> None:
        self.messages.append(ChatMessage(role="agent", agent=AGENT_NAME, content=content))

    def _menu_text(self, lead: str) -> str:
        count = len(self.catalog.scenarios)
        lines = [lead, "", "Select a decommissioning scenario:", *scenario_menu(self.catalog), ""]
        lines.append(f"Type the scenario number (1-{count}):")
        return "\n".join(lines)

    def _on_complete(self, message: str) -> None:
        self.completions += 1
        self._say(message)

        scenario_id = self.state.selected_scenario_id
        scenario = self.catalog.get_scenario(scenario_id) if scenario_id else None
        if scenario is not None:
            self._say(generate_impact_synthesis(self.revealed_systems(), scenario.label, scenario.id))

    async def __aenter__(self) -> "SimulatorSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.engine.__aexit__(exc_type, exc, tb)
