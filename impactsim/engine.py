"""
Timeline engine: turns wall-clock time into dispatched simulator actions.

The engine is the only stateful, time-driven piece of the simulator. It knows
WHEN to dispatch, never what an action means; all business logic lives in the
reducer and the timeline builder.

Lifecycle:
1. The host calls ``sync(active=..., phase=..., selected_scenario_id=...)``
   after every state change.
2. When the simulator is active, running and has a scenario, the engine builds
   the timeline once and starts a single asyncio task for the run.
3. Every tick interval the task advances the virtual tick counter and
   dispatches every action scheduled for that tick, in declaration order.
4. When COMPLETE goes out, ``on_complete`` is called once.
5. The task stops after ``max_tick + 1`` ticks, or as soon as ``sync`` sees the
   activation conditions change.

At most one run is live per engine. Each run is tracked by a ``RunHandle``:
``start()`` acquires one and ``stop()`` consumes it, so no timer state lives at
module level.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .config import Config
from .logging_utils import (
    LOG_TAG_DETERMINISTIC,
    LOG_TAG_ERROR,
    LOG_TAG_INFO,
    LOG_TAG_SUCCESS,
    log_error,
    log_info,
    log_success,
    log_trace,
)
from .schemas import ScenarioCatalog, SimulatorAction, TimelineAction
from .timeline import build_timeline_actions, group_by_tick, max_tick


Dispatch = Callable[[SimulatorAction], None]
CompletionCallback = Callable[[str], None]

COMPLETION_MESSAGE = (
    "**Simulation Complete!**\n\n"
    "Review the impact analysis results below.\n\n"
    "Type **RESET** to run another simulation or **EXIT** to close."
)


# =============================
# Module-level Exceptions
# =============================

class SchedulerError(RuntimeError):
    """Raised when the engine cannot start a timed run."""

    def __init__(self, *, scenario_id: str, reason: str) -> None:
        self.scenario_id = scenario_id
        self.reason = reason
        message = (
            f"Timeline engine could not start scenario '{scenario_id}': {reason}\n\n"
            "Remediation tips:\n"
            "  - Call sync()/start() from inside a running asyncio event loop\n"
            "  - Or build the engine with autostart=False and drive it with step()"
        )
        super().__init__(message)


@dataclass
class RunHandle:
    """Token for one scheduled run. Released exactly once."""

    scenario_id: str
    actions_by_tick: Dict[int, List[TimelineAction]]
    max_tick: int
    tick: int = 0
    completed: bool = False
    released: bool = False
    task: Optional["asyncio.Task[None]"] = field(default=None, repr=False)

    @property
    def finished(self) -> bool:
        """True once the counter has passed the safety bound."""
        return self.tick > self.max_tick + 1


def _current_task() -> Optional["asyncio.Task[object]"]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class TimelineEngine:
    """
    Fixed-period scheduler for the impact simulator timeline.

    Dependencies are injected: ``dispatch`` feeds actions to the host's reducer,
    ``on_complete`` receives the completion message. Neither is treated as a
    trigger for restarting the run; only ``sync`` inputs are.
    """

    def __init__(
        self,
        dispatch: Dispatch,
        on_complete: Optional[CompletionCallback] = None,
        *,
        tick_interval: Optional[float] = None,
        catalog: Optional[ScenarioCatalog] = None,
        autostart: bool = True,
    ):
        """Initialize the engine.

        Args:
            dispatch: Callable that applies one action to the host state
            on_complete: Optional callable receiving the completion message
            tick_interval: Seconds per virtual tick (defaults to
                IMPACTSIM_TICK_INTERVAL_MS / 1000)
            catalog: Catalog used to build timelines (defaults to built-in)
            autostart: When False no asyncio task is created; the caller
                advances runs with step()
        """
        interval = Config.tick_interval_seconds() if tick_interval is None else tick_interval
        if interval < 0:
            raise ValueError(f"tick_interval must be >= 0 (got {interval})")

        self.dispatch = dispatch
        self.on_complete = on_complete
        self.tick_interval = interval
        self.catalog = catalog
        self.autostart = autostart

        # Last run started (kept after release so join() can observe it)
        self._run: Optional[RunHandle] = None
        # Scenario id of the live activation; None when deactivated
        self._active_key: Optional[str] = None
        self.runs_started = 0

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    @property
    def current_run(self) -> Optional[RunHandle]:
        """The live run handle, or None when nothing is scheduled."""
        if self._run is None or self._run.released:
            return None
        return self._run

    @property
    def is_running(self) -> bool:
        return self.current_run is not None

    def sync(
        self,
        *,
        active: bool,
        phase: str,
        selected_scenario_id: Optional[str],
    ) -> Optional[RunHandle]:
        """Reconcile the engine with the host's current state.

        Starts a run when the simulator is active, running and has a scenario;
        stops the live run otherwise. Calling it again with an unchanged
        activation is a no-op, so exactly one timer exists per activation.

        Returns:
            The handle for the current activation, or None when inactive
        """
        if not active or phase != "running" or not selected_scenario_id:
            if self._active_key is not None:
                log_trace(
                    f"  {LOG_TAG_DETERMINISTIC} [Timeline] Deactivated "
                    f"(active={active}, phase={phase}, scenario={selected_scenario_id})"
                )
            self._deactivate()
            return None

        if self._active_key == selected_scenario_id and self._run is not None:
            return self._run

        return self.start(selected_scenario_id)

    def start(self, scenario_id: str) -> RunHandle:
        """Tear down any previous run and start a new one for ``scenario_id``."""
        self._deactivate()

        loop: Optional[asyncio.AbstractEventLoop] = None
        if self.autostart:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                raise SchedulerError(scenario_id=scenario_id, reason="no running event loop") from None

        actions = build_timeline_actions(scenario_id, self.catalog)
        handle = RunHandle(
            scenario_id=scenario_id,
            actions_by_tick=group_by_tick(actions),
            max_tick=max_tick(actions),
        )
        self._run = handle
        self._active_key = scenario_id
        self.runs_started += 1

        log_info(
            f"  {LOG_TAG_INFO} [Timeline] Starting scenario {scenario_id}: "
            f"{len(actions)} actions over {handle.max_tick} ticks"
        )

        if loop is not None:
            handle.task = loop.create_task(self._run_loop(handle))
        return handle

    def stop(self, handle: RunHandle) -> None:
        """Release ``handle``: no further actions are dispatched for it."""
        if handle.released:
            return
        handle.released = True
        log_trace(f"  {LOG_TAG_DETERMINISTIC} [Timeline] Stopped scenario {handle.scenario_id} at tick {handle.tick}")

        task = handle.task
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    def shutdown(self) -> None:
        """Host teardown: stop the live run and forget the activation."""
        self._deactivate()

    def _deactivate(self) -> None:
        self._active_key = None
        if self._run is not None:
            self.stop(self._run)

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    def step(self, handle: Optional[RunHandle] = None) -> bool:
        """Advance ``handle`` (default: the live run) by one virtual tick.

        Dispatches every action due at the new tick, in declaration order,
        re-checking the handle before each dispatch so a run torn down
        mid-batch dispatches nothing further. Exceptions from ``dispatch``
        propagate to the caller.

        Returns:
            True while the run should keep ticking
        """
        handle = handle or self._run
        if handle is None or handle.released:
            return False

        handle.tick += 1
        batch = handle.actions_by_tick.get(handle.tick, [])
        if batch:
            log_trace(
                f"  {LOG_TAG_DETERMINISTIC} [Timeline] Tick {handle.tick}: "
                f"dispatching {len(batch)} action(s)"
            )

        completed_now = False
        for entry in batch:
            if handle.released:
                break
            if entry.description:
                log_trace(f"    -> {entry.description}")
            self.dispatch(entry.action)
            if entry.action.type == "COMPLETE":
                completed_now = True

        if completed_now and not handle.completed:
            handle.completed = True
            log_success(f"  {LOG_TAG_SUCCESS} [Timeline] Scenario {handle.scenario_id} complete")
            if self.on_complete is not None:
                self.on_complete(COMPLETION_MESSAGE)

        if handle.finished:
            self.stop(handle)
            return False
        return not handle.released

    async def _run_loop(self, handle: RunHandle) -> None:
        try:
            while not handle.released:
                await asyncio.sleep(self.tick_interval)
                # Re-check after waking: the host may have deactivated us
                if handle.released:
                    break
                if not self.step(handle):
                    break
        except Exception as exc:
            log_error(f"  {LOG_TAG_ERROR} [Timeline] ERROR at tick {handle.tick}: {exc}")
            raise
        finally:
            handle.released = True

    async def join(self) -> None:
        """Wait for the most recent run's task to finish.

        Re-raises any exception the run's dispatch raised. A run stopped by
        deactivation returns normally.
        """
        handle = self._run
        if handle is None or handle.task is None:
            return
        task = handle.task
        await asyncio.wait([task])
        if task.cancelled():
            return
        task.result()

    async def __aenter__(self) -> "TimelineEngine":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
        handle = self._run
        if handle is not None and handle.task is not None and not handle.task.done():
            await asyncio.wait([handle.task])
