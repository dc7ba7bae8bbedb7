"""
Pydantic schemas for the impact simulator.

All data structures shared by the catalog, reducer, timeline builder, scheduler
and command parser are defined here.

Design Philosophy:
- Catalog models are read-only reference data (scenarios, systems, business flows)
- SimulatorState is replaced, never mutated in place; the reducer returns copies
- Actions are a discriminated union on ``type`` so hosts can round-trip them as JSON
"""

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator


# ============================================================================
# Enumerated string types
# ============================================================================

Phase = Literal["idle", "await_confirm", "await_choice", "running", "done"]
StepStatus = Literal["pending", "running", "done"]
Criticality = Literal["low", "medium", "high", "critical"]
RiskColor = Literal["green", "yellow", "orange", "red"]


# ============================================================================
# Catalog Schemas
# ============================================================================

class ImpactScenario(BaseModel):
    """One what-if option the user can pick (e.g. full decommission)."""

    id: str = Field(..., description="Stable scenario identifier")
    label: str = Field(..., description="Human-friendly scenario name")
    description: str = Field("", description="What the change involves")
    # Fraction of the baseline message volume that the change touches
    impact_multiplier: float = Field(..., ge=0.0, le=1.0, description="0-1 share of baseline affected")
    risk_level: Criticality = Field(..., description="Headline risk rating")


class ConsumerSystem(BaseModel):
    """Downstream system that depends on the mailbox infrastructure."""

    id: str = Field(..., description="Stable system identifier")
    name: str = Field(..., description="Display name")
    description: str = Field("", description="Short role summary")
    criticality: Criticality = Field(..., description="Business criticality of the system")


class BusinessScenario(BaseModel):
    """High-value business flow that runs through one or more consumer systems."""

    id: str = Field(..., description="Stable business scenario identifier")
    title: str = Field(..., description="Display title")
    description: str = Field("", description="What the flow does")
    # Weights are keyed by the same segment/region codes as BaseDistribution
    segment_weight: Dict[str, float] = Field(default_factory=dict, description="Share per client segment")
    region_weight: Dict[str, float] = Field(default_factory=dict, description="Share per region")
    linked_systems: List[str] = Field(default_factory=list, description="Consumer system ids used")


class BaseDistribution(BaseModel):
    """Baseline monthly message volume and how it splits across segments/regions."""

    total_messages: int = Field(..., ge=0, description="Monthly message volume")
    segment_split: Dict[str, float] = Field(default_factory=dict, description="Segment code -> share")
    region_split: Dict[str, float] = Field(default_factory=dict, description="Region code -> share")


class HeatmapNode(BaseModel):
    """Node on the dependency heatmap with a per-scenario risk colour."""

    id: str
    label: str
    x: int = 0
    y: int = 0
    base_risk: RiskColor = "green"
    scenario_risk_deltas: Dict[str, RiskColor] = Field(default_factory=dict)


class ScenarioCatalog(BaseModel):
    """Read-only bundle of everything the timeline builder and parser consume.

    The catalog order is significant: scenarios are numbered 1..N in catalog
    order by the command parser, and systems/business scenarios are revealed
    in catalog order by the timeline builder.
    """

    name: str = Field("default", description="Catalog name")
    description: str = Field("", description="Free-form description")
    scenarios: List[ImpactScenario] = Field(default_factory=list)
    consumer_systems: List[ConsumerSystem] = Field(default_factory=list)
    business_scenarios: List[BusinessScenario] = Field(default_factory=list)
    base_distribution: BaseDistribution
    heatmap_nodes: List[HeatmapNode] = Field(default_factory=list)

    def get_scenario(self, scenario_id: str) -> Optional[ImpactScenario]:
        """Return the scenario with ``scenario_id`` or None."""
        for scenario in self.scenarios:
            if scenario.id == scenario_id:
                return scenario
        return None

    def get_system(self, system_id: str) -> Optional[ConsumerSystem]:
        """Return the consumer system with ``system_id`` or None."""
        for system in self.consumer_systems:
            if system.id == system_id:
                return system
        return None


class AffectedBusinessScenario(BaseModel):
    """Business scenario paired with its estimated affected message volume."""

    scenario: BusinessScenario
    estimated_impact: int


class ImpactStats(BaseModel):
    """Computed impact summary for one scenario."""

    scenario: ImpactScenario
    total_messages_affected: int
    by_segment: Dict[str, int] = Field(default_factory=dict)
    by_region: Dict[str, int] = Field(default_factory=dict)
    top_affected_scenarios: List[AffectedBusinessScenario] = Field(default_factory=list)


# ============================================================================
# Simulator State
# ============================================================================

class TimelineStep(BaseModel):
    """Progress entry shown by the host; never drives logic."""

    id: str
    label: str
    status: StepStatus = "pending"


class SimulatorState(BaseModel):
    """Complete simulator state, owned by the reducer.

    Hosts read it and hand it back to ``reduce``; they never assign to it.
    """

    active: bool = Field(False, description="Whether the host has the simulator open")
    phase: Phase = Field("idle", description="Current coarse-grained mode")
    selected_scenario_id: Optional[str] = Field(None, description="Scenario locked for this run")
    timeline_steps: List[TimelineStep] = Field(default_factory=list)
    # Reveal tracks: insertion order is reveal order, ids are unique
    revealed_systems: List[str] = Field(default_factory=list)
    revealed_business_scenarios: List[str] = Field(default_factory=list)
    impact_stats: Optional[ImpactStats] = None
    # Narrative trace for display only
    logs: List[str] = Field(default_factory=list)

    def step_status(self, step_id: str) -> Optional[StepStatus]:
        """Return the status of timeline step ``step_id`` or None if unknown."""
        for step in self.timeline_steps:
            if step.id == step_id:
                return step.status
        return None


# ============================================================================
# Actions
# ============================================================================

class StartAction(BaseModel):
    type: Literal["START"] = "START"


class ConfirmYesAction(BaseModel):
    type: Literal["CONFIRM_YES"] = "CONFIRM_YES"


class ChooseScenarioAction(BaseModel):
    type: Literal["CHOOSE_SCENARIO"] = "CHOOSE_SCENARIO"
    scenario_id: str


class TickTimelineStepAction(BaseModel):
    type: Literal["TICK_TIMELINE_STEP"] = "TICK_TIMELINE_STEP"
    step_id: str
    status: StepStatus


class TickRevealSystemAction(BaseModel):
    type: Literal["TICK_REVEAL_SYSTEM"] = "TICK_REVEAL_SYSTEM"
    system_id: str


class TickRevealBusinessScenarioAction(BaseModel):
    type: Literal["TICK_REVEAL_BUSINESS_SCENARIO"] = "TICK_REVEAL_BUSINESS_SCENARIO"
    scenario_id: str


class SetImpactStatsAction(BaseModel):
    type: Literal["SET_IMPACT_STATS"] = "SET_IMPACT_STATS"
    stats: ImpactStats


class CompleteAction(BaseModel):
    type: Literal["COMPLETE"] = "COMPLETE"


class BackAction(BaseModel):
    """Return to scenario selection from a running or finished run."""

    type: Literal["BACK"] = "BACK"


class ExitAction(BaseModel):
    type: Literal["EXIT"] = "EXIT"


class ResetAction(BaseModel):
    type: Literal["RESET"] = "RESET"


SimulatorAction = Annotated[
    Union[
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
    ],
    Field(discriminator="type"),
]


class TimelineAction(BaseModel):
    """One scheduled dispatch: ``action`` fires when the virtual tick hits ``at_tick``."""

    at_tick: int = Field(..., ge=1, description="1-based virtual tick")
    action: SimulatorAction
    description: Optional[str] = Field(None, description="Human-readable note for traces")


class ParseResult(BaseModel):
    """Outcome of parsing one chat command: an action or a message, never both."""

    action: Optional[SimulatorAction] = None
    message: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "ParseResult":
        if (self.action is None) == (self.message is None):
            raise ValueError("ParseResult requires exactly one of action or message")
        return self
