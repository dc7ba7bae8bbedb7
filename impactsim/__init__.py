"""
Impact Simulator - deterministic what-if engine for decommissioning analysis.

A phase state machine, a declarative tick timeline and a single-flight
scheduler that replays the timeline into the state machine.

No file I/O required. No network. No global timer state.
All host callbacks are injected.
"""

__version__ = "0.1.0"

# Engine components
from .reducer import reduce, get_initial_state, initial_timeline_steps
from .timeline import build_timeline_actions, max_tick, group_by_tick
from .engine import TimelineEngine, RunHandle, SchedulerError, COMPLETION_MESSAGE
from .commands import parse_command, scenario_menu
from .session import SimulatorSession, ChatMessage

# Scenario/stats provider
from .catalog import (
    DEFAULT_CATALOG,
    CatalogLoader,
    CatalogValidationError,
    UnknownScenarioError,
    compute_impact_stats,
    heatmap_for_scenario,
    validate_catalog,
)
from .review import ImpactReview, build_impact_review, generate_impact_synthesis

# Core schemas
from .schemas import (
    AffectedBusinessScenario,
    BaseDistribution,
    BusinessScenario,
    ConsumerSystem,
    HeatmapNode,
    ImpactScenario,
    ImpactStats,
    ParseResult,
    ScenarioCatalog,
    SimulatorAction,
    SimulatorState,
    TimelineAction,
    TimelineStep,
    StartAction,
    ConfirmYesAction,
    ChooseScenarioAction,
    TickTimelineStepAction,
    TickRevealSystemAction,
    TickRevealBusinessScenarioAction,
    SetImpactStatsAction,
    CompleteAction,
    BackAction,
    ExitAction,
    ResetAction,
)

__all__ = [
    # Engine
    "reduce",
    "get_initial_state",
    "initial_timeline_steps",
    "build_timeline_actions",
    "max_tick",
    "group_by_tick",
    "TimelineEngine",
    "RunHandle",
    "SchedulerError",
    "COMPLETION_MESSAGE",
    "parse_command",
    "scenario_menu",
    "SimulatorSession",
    "ChatMessage",
    # Catalog
    "DEFAULT_CATALOG",
    "CatalogLoader",
    "CatalogValidationError",
    "UnknownScenarioError",
    "compute_impact_stats",
    "heatmap_for_scenario",
    "validate_catalog",
    # Review
    "ImpactReview",
    "build_impact_review",
    "generate_impact_synthesis",
    # Schemas
    "AffectedBusinessScenario",
    "BaseDistribution",
    "BusinessScenario",
    "ConsumerSystem",
    "HeatmapNode",
    "ImpactScenario",
    "ImpactStats",
    "ParseResult",
    "ScenarioCatalog",
    "SimulatorAction",
    "SimulatorState",
    "TimelineAction",
    "TimelineStep",
    # Actions
    "StartAction",
    "ConfirmYesAction",
    "ChooseScenarioAction",
    "TickTimelineStepAction",
    "TickRevealSystemAction",
    "TickRevealBusinessScenarioAction",
    "SetImpactStatsAction",
    "CompleteAction",
    "BackAction",
    "ExitAction",
    "ResetAction",
]
