"""
Declarative timeline for the impact simulator animation.

``build_timeline_actions`` returns the exact, ordered list of actions the
scheduler should dispatch once a scenario is chosen. It is pure data: no
timers, no state, no randomness. Identical inputs always yield an identical
list, which is what lets the scheduler derive its stop bound from the
largest tick.

Timeline structure for N consumer systems and M business scenarios (the
default catalog has N = M = 16, so 38 ticks):

    tick 1              step_dependencies -> running
    ticks 2..N+1        reveal one consumer system per tick (catalog order)
    tick N+2            step_dependencies -> done, step_business -> running
    ticks N+3..N+M+2    reveal one business scenario per tick (catalog order)
    tick N+M+3          step_business -> done, step_compute -> running
    tick N+M+4          SET_IMPACT_STATS, step_compute -> done,
                        step_recommendations -> running
    tick N+M+5          step_recommendations -> done
    tick N+M+6          COMPLETE

Ticks are ordinal positions, not durations; wall-clock pacing belongs to the
scheduler.
"""

from typing import Dict, Iterable, List, Optional

from .catalog import DEFAULT_CATALOG, compute_impact_stats
from .reducer import STEP_BUSINESS, STEP_COMPUTE, STEP_DEPENDENCIES, STEP_RECOMMENDATIONS
from .schemas import (
    CompleteAction,
    ScenarioCatalog,
    SetImpactStatsAction,
    StepStatus,
    TickRevealBusinessScenarioAction,
    TickRevealSystemAction,
    TickTimelineStepAction,
    TimelineAction,
)


def _step(at_tick: int, step_id: str, status: StepStatus, description: str) -> TimelineAction:
    return TimelineAction(
        at_tick=at_tick,
        action=TickTimelineStepAction(step_id=step_id, status=status),
        description=description,
    )


def build_timeline_actions(
    scenario_id: str, catalog: Optional[ScenarioCatalog] = None
) -> List[TimelineAction]:
    """Build the deterministic action schedule for ``scenario_id``.

    Args:
        scenario_id: Scenario locked by CHOOSE_SCENARIO
        catalog: Catalog to reveal from (defaults to the built-in catalog)

    Returns:
        Timeline actions sorted by tick; same-tick actions in dispatch order

    Raises:
        UnknownScenarioError: If the scenario is not in the catalog
    """
    catalog = catalog or DEFAULT_CATALOG
    systems = catalog.consumer_systems
    business = catalog.business_scenarios

    # Computed up front so an unknown id fails before any action is built
    stats = compute_impact_stats(scenario_id, catalog)

    actions: List[TimelineAction] = [
        _step(1, STEP_DEPENDENCIES, "running", "Start revealing consumer systems"),
    ]

    for idx, system in enumerate(systems):
        actions.append(
            TimelineAction(
                at_tick=2 + idx,
                action=TickRevealSystemAction(system_id=system.id),
                description=f"Reveal system {idx + 1}/{len(systems)}: {system.name}",
            )
        )

    tick = len(systems) + 2
    actions.append(_step(tick, STEP_DEPENDENCIES, "done", "Complete dependencies step"))
    actions.append(_step(tick, STEP_BUSINESS, "running", "Start revealing business scenarios"))

    for idx, biz in enumerate(business):
        actions.append(
            TimelineAction(
                at_tick=tick + 1 + idx,
                action=TickRevealBusinessScenarioAction(scenario_id=biz.id),
                description=f"Reveal business scenario {idx + 1}/{len(business)}: {biz.title}",
            )
        )

    tick += len(business) + 1
    actions.append(_step(tick, STEP_BUSINESS, "done", "Complete business scenarios step"))
    actions.append(_step(tick, STEP_COMPUTE, "running", "Start computing impact statistics"))

    tick += 1
    actions.append(
        TimelineAction(
            at_tick=tick,
            action=SetImpactStatsAction(stats=stats),
            description=f"Compute impact stats for scenario: {scenario_id}",
        )
    )
    actions.append(_step(tick, STEP_COMPUTE, "done", "Complete compute step"))
    actions.append(_step(tick, STEP_RECOMMENDATIONS, "running", "Start generating recommendations"))

    tick += 1
    actions.append(_step(tick, STEP_RECOMMENDATIONS, "done", "Complete recommendations step"))

    tick += 1
    actions.append(
        TimelineAction(at_tick=tick, action=CompleteAction(), description="Simulation complete")
    )

    return actions


def max_tick(actions: Iterable[TimelineAction]) -> int:
    """Return the largest ``at_tick`` in ``actions`` (0 when empty)."""
    return max((entry.at_tick for entry in actions), default=0)


def group_by_tick(actions: Iterable[TimelineAction]) -> Dict[int, List[TimelineAction]]:
    """Index actions by tick, preserving declaration order within each tick."""
    grouped: Dict[int, List[TimelineAction]] = {}
    for entry in actions:
        grouped.setdefault(entry.at_tick, []).append(entry)
    return grouped
