"""Tests for the declarative timeline builder."""

import pytest

from impactsim.catalog import UnknownScenarioError
from impactsim.reducer import get_initial_state, reduce
from impactsim.schemas import ChooseScenarioAction, ConfirmYesAction, StartAction
from impactsim.timeline import build_timeline_actions, group_by_tick, max_tick


def _describe(actions):
    return [(entry.at_tick, entry.action.type) for entry in actions]


def test_default_timeline_spans_38_ticks():
    actions = build_timeline_actions("FULL_DECOM")

    assert max_tick(actions) == 38
    assert len(actions) == 42
    assert actions[-1].action.type == "COMPLETE"
    assert actions[-1].at_tick == 38


def test_timeline_is_deterministic():
    assert build_timeline_actions("DECOM_WITH_MIGRATION") == build_timeline_actions(
        "DECOM_WITH_MIGRATION"
    )


@pytest.mark.parametrize(
    "scenario_id", ["FULL_DECOM", "DECOM_WITH_MIGRATION", "DECOM_SOAP_ONLY", "PROTOCOL_UPGRADE"]
)
def test_ticks_are_non_decreasing_and_complete_is_last(scenario_id):
    actions = build_timeline_actions(scenario_id)
    ticks = [entry.at_tick for entry in actions]

    assert ticks == sorted(ticks)
    assert ticks[0] == 1
    complete = [entry for entry in actions if entry.action.type == "COMPLETE"]
    assert len(complete) == 1
    assert complete[0].at_tick == max(ticks)


def test_small_catalog_layout(small_catalog):
    actions = build_timeline_actions("s1", small_catalog)

    assert _describe(actions) == [
        (1, "TICK_TIMELINE_STEP"),
        (2, "TICK_REVEAL_SYSTEM"),
        (3, "TICK_REVEAL_SYSTEM"),
        (4, "TICK_REVEAL_SYSTEM"),
        (5, "TICK_TIMELINE_STEP"),
        (5, "TICK_TIMELINE_STEP"),
        (6, "TICK_REVEAL_BUSINESS_SCENARIO"),
        (7, "TICK_REVEAL_BUSINESS_SCENARIO"),
        (8, "TICK_TIMELINE_STEP"),
        (8, "TICK_TIMELINE_STEP"),
        (9, "SET_IMPACT_STATS"),
        (9, "TICK_TIMELINE_STEP"),
        (9, "TICK_TIMELINE_STEP"),
        (10, "TICK_TIMELINE_STEP"),
        (11, "COMPLETE"),
    ]
    assert [a.action.system_id for a in actions if a.action.type == "TICK_REVEAL_SYSTEM"] == [
        "sys_a",
        "sys_b",
        "sys_c",
    ]


def test_same_tick_steps_keep_declared_order(small_catalog):
    grouped = group_by_tick(build_timeline_actions("s1", small_catalog))

    assert [(a.action.step_id, a.action.status) for a in grouped[5]] == [
        ("step_dependencies", "done"),
        ("step_business", "running"),
    ]
    assert [a.action.type for a in grouped[9]] == [
        "SET_IMPACT_STATS",
        "TICK_TIMELINE_STEP",
        "TICK_TIMELINE_STEP",
    ]
    assert grouped[9][0].action.stats.scenario.id == "s1"


def test_unknown_scenario_is_a_programming_error():
    with pytest.raises(UnknownScenarioError):
        build_timeline_actions("NOT_A_SCENARIO")


def test_max_tick_of_empty_list():
    assert max_tick([]) == 0


def test_replaying_timeline_reaches_done(small_catalog):
    state = get_initial_state()
    for action in (StartAction(), ConfirmYesAction(), ChooseScenarioAction(scenario_id="s1")):
        state = reduce(state, action)
    assert state.phase == "running"

    for entry in build_timeline_actions("s1", small_catalog):
        state = reduce(state, entry.action)

    assert state.phase == "done"
    assert len(state.revealed_systems) == 3
    assert len(state.revealed_business_scenarios) == 2
    assert state.impact_stats is not None
    assert state.impact_stats.total_messages_affected == 5_000
