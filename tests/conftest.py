"""Shared fixtures: a small catalog with 3 systems and 2 business scenarios."""

import pytest

from impactsim.schemas import (
    BaseDistribution,
    BusinessScenario,
    ConsumerSystem,
    HeatmapNode,
    ImpactScenario,
    ScenarioCatalog,
)


def build_small_catalog() -> ScenarioCatalog:
    return ScenarioCatalog(
        name="small",
        scenarios=[
            ImpactScenario(id="s1", label="Retire SOAP", impact_multiplier=0.5, risk_level="high"),
            ImpactScenario(id="s2", label="Upgrade auth", impact_multiplier=0.1, risk_level="low"),
        ],
        consumer_systems=[
            ConsumerSystem(id="sys_a", name="Payments Hub", criticality="critical"),
            ConsumerSystem(id="sys_b", name="Client Portal", criticality="high"),
            ConsumerSystem(id="sys_c", name="Batch Reports", criticality="low"),
        ],
        business_scenarios=[
            BusinessScenario(
                id="biz_a",
                title="Payment Confirmation",
                segment_weight={"PB": 1.0},
                region_weight={"CH": 1.0},
                linked_systems=["sys_a", "sys_b"],
            ),
            BusinessScenario(
                id="biz_b",
                title="Statement Delivery",
                segment_weight={"CIC": 1.0},
                region_weight={"EMEA": 1.0},
                linked_systems=["sys_c"],
            ),
        ],
        base_distribution=BaseDistribution(
            total_messages=10_000,
            segment_split={"PB": 0.6, "CIC": 0.4},
            region_split={"CH": 0.7, "EMEA": 0.3},
        ),
        heatmap_nodes=[
            HeatmapNode(id="soap_api", label="SOAP API", scenario_risk_deltas={"s1": "red"}),
            HeatmapNode(id="rest_api", label="REST API", base_risk="yellow"),
        ],
    )


@pytest.fixture
def small_catalog() -> ScenarioCatalog:
    return build_small_catalog()
