"""End-to-end tests for the chat-style simulator session."""

import pytest

from impactsim.engine import COMPLETION_MESSAGE
from impactsim.schemas import BackAction
from impactsim.session import SimulatorSession


def _agent_texts(session):
    return [m.content for m in session.messages if m.role == "agent"]


def _drive(session):
    while session.engine.step():
        pass


def test_full_flow_with_manual_ticks():
    session = SimulatorSession(autostart=False)
    session.enter()
    assert session.state.phase == "await_confirm"

    session.handle_input("yes")
    assert session.state.phase == "await_choice"
    assert "Select a decommissioning scenario:" in _agent_texts(session)[-1]

    session.handle_input("1")
    assert session.state.phase == "running"
    assert session.engine.is_running

    _drive(session)

    assert session.state.phase == "done"
    assert len(session.state.revealed_systems) == 16
    assert len(session.state.revealed_business_scenarios) == 16
    assert session.state.impact_stats.total_messages_affected == 1_500_000
    assert session.completions == 1
    assert COMPLETION_MESSAGE in _agent_texts(session)
    assert "NOT RECOMMENDED (HIGHLY RISKY)" in _agent_texts(session)[-1]
    assert not session.engine.is_running


def test_rejected_input_gets_reply():
    session = SimulatorSession(autostart=False)
    session.enter()

    result = session.handle_input("7")

    assert result.action is None
    assert session.state.phase == "await_confirm"
    assert session.messages[-2].role == "user"
    assert session.messages[-1].content == result.message


@pytest.mark.parametrize("text", ["RESET", "exit"])
def test_noop_commands_in_idle_post_nothing(text):
    session = SimulatorSession(autostart=False)

    session.handle_input(text)

    assert session.state.phase == "idle"
    assert [m.role for m in session.messages] == ["user"]


def test_back_in_idle_posts_no_menu():
    session = SimulatorSession(autostart=False)

    assert session.dispatch(BackAction()) is False
    assert session.messages == []


def test_repeat_enter_is_silent():
    session = SimulatorSession(autostart=False)

    assert session.enter() is True
    assert session.enter() is False
    assert len(_agent_texts(session)) == 1
    assert session.state.phase == "await_confirm"


def test_exit_mid_run_stops_reveals():
    session = SimulatorSession(autostart=False)
    session.enter()
    session.handle_input("YES")
    session.handle_input("2")
    handle = session.engine.current_run

    for _ in range(3):
        session.engine.step()
    assert session.state.revealed_systems == ["sys_01", "sys_02"]

    session.handle_input("exit")

    assert session.state.phase == "idle"
    assert session.state.active is False
    assert handle.released
    assert session.engine.step(handle) is False
    assert session.state.revealed_systems == []
    assert session.completions == 0
    assert _agent_texts(session)[-1] == "Impact Simulator exited."


def test_reset_after_done_allows_second_run(small_catalog):
    session = SimulatorSession(small_catalog, autostart=False)
    session.enter()
    session.handle_input("YES")
    session.handle_input("1")
    _drive(session)

    session.handle_input("RESET")
    assert session.state.phase == "await_choice"
    assert session.heatmap() == {}

    session.handle_input("2")
    _drive(session)

    assert session.state.phase == "done"
    assert session.state.selected_scenario_id == "s2"
    assert session.engine.runs_started == 2
    assert session.completions == 2


def test_listeners_see_only_real_changes(small_catalog):
    seen = []
    session = SimulatorSession(
        small_catalog,
        autostart=False,
        state_listeners=[lambda prev, new, action: seen.append(action.type)],
    )
    session.enter()
    session.enter()

    assert seen == ["START"]


def test_revealed_systems_and_heatmap(small_catalog):
    session = SimulatorSession(small_catalog, autostart=False)
    session.enter()
    session.handle_input("YES")
    session.handle_input("1")
    session.engine.step()
    session.engine.step()

    assert [s.id for s in session.revealed_systems()] == ["sys_a"]
    assert session.heatmap() == {"soap_api": "red", "rest_api": "yellow"}


@pytest.mark.asyncio
async def test_async_flow(small_catalog):
    async with SimulatorSession(small_catalog, tick_interval=0) as session:
        session.enter()
        session.handle_input("Y")
        session.handle_input("1")
        # Rejected while running; the live timer is left alone
        session.handle_input("1")
        await session.wait()

        assert session.state.phase == "done"
        assert session.engine.runs_started == 1
        assert session.completions == 1
        assert session.state.revealed_systems == ["sys_a", "sys_b", "sys_c"]
