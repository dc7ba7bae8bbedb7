"""Tests for the timeline engine: single-flight activation, ticking and cancellation."""

import asyncio

import pytest

from impactsim.engine import COMPLETION_MESSAGE, SchedulerError, TimelineEngine
from impactsim.timeline import build_timeline_actions


class Recorder:
    """Collects dispatched actions and completion messages."""

    def __init__(self):
        self.actions = []
        self.completions = []

    def dispatch(self, action):
        self.actions.append(action)

    def on_complete(self, message):
        self.completions.append(message)


def _running(engine, scenario_id="s1"):
    return engine.sync(active=True, phase="running", selected_scenario_id=scenario_id)


def test_sync_is_single_flight(small_catalog):
    recorder = Recorder()
    engine = TimelineEngine(recorder.dispatch, catalog=small_catalog, autostart=False)

    first = _running(engine)
    second = _running(engine)

    assert first is second
    assert engine.runs_started == 1
    assert engine.is_running


def test_sync_ignores_inactive_states(small_catalog):
    engine = TimelineEngine(Recorder().dispatch, catalog=small_catalog, autostart=False)

    assert engine.sync(active=False, phase="running", selected_scenario_id="s1") is None
    assert engine.sync(active=True, phase="await_choice", selected_scenario_id="s1") is None
    assert engine.sync(active=True, phase="running", selected_scenario_id=None) is None
    assert engine.runs_started == 0


def test_step_dispatches_whole_timeline_in_order(small_catalog):
    recorder = Recorder()
    engine = TimelineEngine(
        recorder.dispatch, recorder.on_complete, catalog=small_catalog, autostart=False
    )
    handle = _running(engine)

    results = [engine.step() for _ in range(handle.max_tick + 2)]

    # Ticks 1..max_tick + 1 keep going; the safety bound stops the run after that
    assert results == [True] * (handle.max_tick + 1) + [False]
    assert recorder.actions == [entry.action for entry in build_timeline_actions("s1", small_catalog)]
    assert recorder.completions == [COMPLETION_MESSAGE]
    assert handle.released
    assert engine.step() is False


def test_finished_run_is_not_restarted_by_sync(small_catalog):
    recorder = Recorder()
    engine = TimelineEngine(recorder.dispatch, catalog=small_catalog, autostart=False)
    handle = _running(engine)
    while engine.step():
        pass

    assert _running(engine) is handle
    assert engine.runs_started == 1
    assert not engine.is_running


def test_deactivation_releases_handle(small_catalog):
    recorder = Recorder()
    engine = TimelineEngine(recorder.dispatch, catalog=small_catalog, autostart=False)
    handle = _running(engine)
    engine.step()
    engine.step()

    engine.sync(active=False, phase="idle", selected_scenario_id=None)

    assert handle.released
    assert engine.step(handle) is False
    assert len(recorder.actions) == 2


def test_scenario_change_replaces_run(small_catalog):
    engine = TimelineEngine(Recorder().dispatch, catalog=small_catalog, autostart=False)
    old = _running(engine, "s1")
    new = _running(engine, "s2")

    assert old is not new
    assert old.released
    assert not new.released
    assert engine.runs_started == 2


def test_shutdown_mid_batch_stops_remaining_actions(small_catalog):
    dispatched = []
    engine = None

    def dispatch(action):
        dispatched.append(action)
        if action.type == "TICK_TIMELINE_STEP" and action.status == "done":
            engine.shutdown()

    engine = TimelineEngine(dispatch, catalog=small_catalog, autostart=False)
    _running(engine)
    while engine.step():
        pass

    # Tick 5 holds dependencies->done then business->running; only the first goes out
    assert [a.type for a in dispatched] == [
        "TICK_TIMELINE_STEP",
        "TICK_REVEAL_SYSTEM",
        "TICK_REVEAL_SYSTEM",
        "TICK_REVEAL_SYSTEM",
        "TICK_TIMELINE_STEP",
    ]
    assert dispatched[-1].step_id == "step_dependencies"


def test_dispatch_error_propagates_from_step(small_catalog):
    def dispatch(action):
        raise RuntimeError("reducer exploded")

    engine = TimelineEngine(dispatch, catalog=small_catalog, autostart=False)
    _running(engine)

    with pytest.raises(RuntimeError, match="reducer exploded"):
        engine.step()


def test_autostart_without_loop_raises(small_catalog):
    engine = TimelineEngine(Recorder().dispatch, catalog=small_catalog)

    with pytest.raises(SchedulerError) as excinfo:
        _running(engine)
    assert excinfo.value.scenario_id == "s1"
    assert "no running event loop" in str(excinfo.value)


def test_negative_interval_rejected():
    with pytest.raises(ValueError):
        TimelineEngine(Recorder().dispatch, tick_interval=-1)


@pytest.mark.asyncio
async def test_async_run_completes_once(small_catalog):
    recorder = Recorder()
    engine = TimelineEngine(
        recorder.dispatch, recorder.on_complete, catalog=small_catalog, tick_interval=0
    )

    _running(engine)
    # Re-syncing while the task runs must not start a second timer
    _running(engine)
    await engine.join()

    assert engine.runs_started == 1
    assert recorder.actions == [entry.action for entry in build_timeline_actions("s1", small_catalog)]
    assert recorder.completions == [COMPLETION_MESSAGE]
    assert not engine.is_running


@pytest.mark.asyncio
async def test_async_deactivation_cancels_pending_ticks(small_catalog):
    recorder = Recorder()
    engine = TimelineEngine(recorder.dispatch, catalog=small_catalog, tick_interval=0.01)

    handle = _running(engine)
    while len(recorder.actions) < 3:
        await asyncio.sleep(0.005)
    engine.sync(active=False, phase="idle", selected_scenario_id=None)
    seen = len(recorder.actions)

    await engine.join()
    await asyncio.sleep(0.05)

    assert handle.released
    assert len(recorder.actions) == seen
    assert not recorder.completions


@pytest.mark.asyncio
async def test_join_reraises_dispatch_errors(small_catalog):
    def dispatch(action):
        if action.type == "TICK_REVEAL_SYSTEM":
            raise RuntimeError("bad reveal")

    engine = TimelineEngine(dispatch, catalog=small_catalog, tick_interval=0)
    handle = _running(engine)

    with pytest.raises(RuntimeError, match="bad reveal"):
        await engine.join()
    assert handle.released


@pytest.mark.asyncio
async def test_context_manager_shuts_down(small_catalog):
    recorder = Recorder()
    async with TimelineEngine(recorder.dispatch, catalog=small_catalog, tick_interval=10) as engine:
        handle = _running(engine)

    assert handle.released
    assert handle.task.done()
    assert recorder.actions == []
