"""
Impact simulator state machine.

``reduce(state, action)`` is the only way SimulatorState changes. It is pure
and total:
- never raises for any declared action
- returns the *same* state object when the action is not legal in the current
  phase (stale scheduler ticks after EXIT, duplicate reveals, unknown objects)
- never validates user intent; the command parser decides which actions a user
  may send, the reducer only applies them

Phase graph:
    idle --START--> await_confirm --CONFIRM_YES--> await_choice
    await_choice --CHOOSE_SCENARIO--> running --COMPLETE--> done
    any non-idle --EXIT--> idle
    any non-idle --RESET--> await_choice
    running|done --BACK--> await_choice
"""

from typing import Any, Callable, Dict, List

from .schemas import (
    BackAction,
    ChooseScenarioAction,
    CompleteAction,
    ConfirmYesAction,
    ExitAction,
    ResetAction,
    SetImpactStatsAction,
    SimulatorState,
    StartAction,
    StepStatus,
    TickRevealBusinessScenarioAction,
    TickRevealSystemAction,
    TickTimelineStepAction,
    TimelineStep,
)


# Timeline step ids, in display order
STEP_INIT = "step_init"
STEP_SCENARIO = "step_scenario"
STEP_DEPENDENCIES = "step_dependencies"
STEP_BUSINESS = "step_business"
STEP_COMPUTE = "step_compute"
STEP_RECOMMENDATIONS = "step_recommendations"

DEFAULT_TIMELINE_STEPS = (
    (STEP_INIT, "Initialize simulation"),
    (STEP_SCENARIO, "Scenario selection locked"),
    (STEP_DEPENDENCIES, "Reveal consumer systems"),
    (STEP_BUSINESS, "Reveal business scenarios"),
    (STEP_COMPUTE, "Compute impact statistics"),
    (STEP_RECOMMENDATIONS, "Generate recommendations"),
)


def initial_timeline_steps() -> List[TimelineStep]:
    """Return a fresh list of pending timeline steps."""
    return [TimelineStep(id=step_id, label=label) for step_id, label in DEFAULT_TIMELINE_STEPS]


def get_initial_state() -> SimulatorState:
    """Return the idle state a host creates when it mounts the simulator."""
    return SimulatorState(timeline_steps=initial_timeline_steps())


def _with_step_statuses(
    steps: List[TimelineStep], updates: Dict[str, StepStatus]
) -> List[TimelineStep]:
    return [
        step.model_copy(update={"status": updates[step.id]}) if step.id in updates else step
        for step in steps
    ]


def _active_state(phase: str, logs: List[str]) -> SimulatorState:
    """Fresh active state with the init step already done."""
    return SimulatorState(
        active=True,
        phase=phase,
        timeline_steps=_with_step_statuses(initial_timeline_steps(), {STEP_INIT: "done"}),
        logs=logs,
    )


# ============================================================
# Handlers (one per action type)
# ============================================================

def _on_start(state: SimulatorState, action: StartAction) -> SimulatorState:
    if state.phase != "idle":
        return state
    return _active_state(
        "await_confirm",
        [
            "Impact Simulator initialized.",
            "This is a deterministic what-if simulation.",
            'Please confirm to proceed: type "YES" or "Y".',
        ],
    )


def _on_confirm(state: SimulatorState, action: ConfirmYesAction) -> SimulatorState:
    if state.phase != "await_confirm":
        return state
    return state.model_copy(
        update={
            "phase": "await_choice",
            "logs": [*state.logs, "Simulation confirmed.", "Select a decommissioning scenario."],
        }
    )


def _on_choose(state: SimulatorState, action: ChooseScenarioAction) -> SimulatorState:
    if state.phase != "await_choice":
        return state
    return state.model_copy(
        update={
            "phase": "running",
            "selected_scenario_id": action.scenario_id,
            "revealed_systems": [],
            "revealed_business_scenarios": [],
            "impact_stats": None,
            "timeline_steps": _with_step_statuses(
                state.timeline_steps,
                {STEP_SCENARIO: "done", STEP_DEPENDENCIES: "running"},
            ),
            "logs": [
                *state.logs,
                f"Scenario locked: {action.scenario_id}",
                "Starting timed reveal...",
            ],
        }
    )


def _on_timeline_step(state: SimulatorState, action: TickTimelineStepAction) -> SimulatorState:
    if state.phase != "running" or state.step_status(action.step_id) is None:
        return state
    return state.model_copy(
        update={
            "timeline_steps": _with_step_statuses(
                state.timeline_steps, {action.step_id: action.status}
            )
        }
    )


def _on_reveal_system(state: SimulatorState, action: TickRevealSystemAction) -> SimulatorState:
    if state.phase != "running" or action.system_id in state.revealed_systems:
        return state
    return state.model_copy(
        update={"revealed_systems": [*state.revealed_systems, action.system_id]}
    )


def _on_reveal_business(
    state: SimulatorState, action: TickRevealBusinessScenarioAction
) -> SimulatorState:
    if state.phase != "running" or action.scenario_id in state.revealed_business_scenarios:
        return state
    return state.model_copy(
        update={
            "revealed_business_scenarios": [
                *state.revealed_business_scenarios,
                action.scenario_id,
            ]
        }
    )


def _on_set_stats(state: SimulatorState, action: SetImpactStatsAction) -> SimulatorState:
    # Set once per run
    if state.phase != "running" or state.impact_stats is not None:
        return state
    stats = action.stats
    return state.model_copy(
        update={
            "impact_stats": stats,
            "logs": [
                *state.logs,
                f"Impact analysis complete for: {stats.scenario.label}",
                f"  Total messages affected: {stats.total_messages_affected:,}/month",
                f"  Risk level: {stats.scenario.risk_level.upper()}",
            ],
        }
    )


def _on_complete(state: SimulatorState, action: CompleteAction) -> SimulatorState:
    if state.phase != "running":
        return state
    return state.model_copy(
        update={
            "phase": "done",
            "timeline_steps": [
                step.model_copy(update={"status": "done"}) for step in state.timeline_steps
            ],
            "logs": [
                *state.logs,
                "Simulation complete!",
                "You can now review recommendations or exit the simulator.",
            ],
        }
    )


def _on_back(state: SimulatorState, action: BackAction) -> SimulatorState:
    if state.phase not in ("running", "done"):
        return state
    return _active_state(
        "await_choice",
        ["Returning to scenario selection...", "Select a decommissioning scenario."],
    )


def _on_exit(state: SimulatorState, action: ExitAction) -> SimulatorState:
    if state.phase == "idle":
        return state
    exited = get_initial_state()
    exited.logs.append("Impact Simulator exited.")
    return exited


def _on_reset(state: SimulatorState, action: ResetAction) -> SimulatorState:
    # Back to choice, not confirm: a reset re-runs without re-confirming intent
    if state.phase == "idle":
        return state
    return _active_state(
        "await_choice",
        ["Simulator reset.", "Select a decommissioning scenario."],
    )


_HANDLERS: Dict[str, Callable[[SimulatorState, Any], SimulatorState]] = {
    "START": _on_start,
    "CONFIRM_YES": _on_confirm,
    "CHOOSE_SCENARIO": _on_choose,
    "TICK_TIMELINE_STEP": _on_timeline_step,
    "TICK_REVEAL_SYSTEM": _on_reveal_system,
    "TICK_REVEAL_BUSINESS_SCENARIO": _on_reveal_business,
    "SET_IMPACT_STATS": _on_set_stats,
    "COMPLETE": _on_complete,
    "BACK": _on_back,
    "EXIT": _on_exit,
    "RESET": _on_reset,
}


def reduce(state: SimulatorState, action: Any) -> SimulatorState:
    """Apply ``action`` to ``state`` and return the resulting state.

    Unknown actions and actions that are illegal in the current phase return
    ``state`` itself, unchanged.
    """
    action_type = getattr(action, "type", None)
    if not isinstance(action_type, str):
        return state
    handler = _HANDLERS.get(action_type)
    if handler is None:
        return state
    return handler(state, action)
