"""
Scenario catalog and impact statistics for the mailbox decommissioning simulator.

This module is the read-only data source for the rest of the engine:
- ``DEFAULT_CATALOG`` holds the built-in what-if scenarios, the 16 dependent
  consumer systems, the 16 business scenarios and the baseline volume split
- ``compute_impact_stats`` turns a scenario id into an ``ImpactStats`` summary
- ``CatalogLoader`` reads alternative catalogs from JSON files

Everything here is pure. Nothing is computed during the animation; the
timeline builder calls ``compute_impact_stats`` once when a run starts.

Catalog file structure:
```json
{
  "name": "mailbox_decom",
  "scenarios": [{"id": "FULL_DECOM", "label": "...", "impact_multiplier": 1.0, "risk_level": "critical"}],
  "consumer_systems": [{"id": "sys_01", "name": "...", "criticality": "critical"}],
  "business_scenarios": [{"id": "biz_01", "title": "...", "segment_weight": {...},
                          "region_weight": {...}, "linked_systems": ["sys_01"]}],
  "base_distribution": {"total_messages": 1500000, "segment_split": {...}, "region_split": {...}},
  "heatmap_nodes": []
}
```
"""

import json
import math
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .config import Config
from .schemas import (
    AffectedBusinessScenario,
    BaseDistribution,
    BusinessScenario,
    ConsumerSystem,
    HeatmapNode,
    ImpactScenario,
    ImpactStats,
    RiskColor,
    ScenarioCatalog,
)


# =============================
# Module-level Exceptions
# =============================

class UnknownScenarioError(KeyError):
    """Raised when a scenario id is not present in the catalog.

    Reaching this means a caller skipped the command parser, which only ever
    emits ids taken from the catalog.
    """

    def __init__(self, scenario_id: str, known: List[str]) -> None:
        self.scenario_id = scenario_id
        self.known = known
        message = (
            f"Unknown scenario: {scenario_id}\n"
            f"Known scenarios: {', '.join(known) or '(none)'}\n\n"
            "Remediation tips:\n"
            "  - Pick scenarios through parse_command() so ids come from the catalog\n"
            "  - Check that the timeline and the parser use the same catalog"
        )
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the multi-line message readable
        return self.args[0]


class CatalogValidationError(ValueError):
    """Raised when a catalog file is structurally invalid."""

    def __init__(self, *, source: str, problems: List[str]) -> None:
        self.source = source
        self.problems = problems
        lines = [f"Catalog '{source}' is invalid:"]
        lines.extend(f"  - {problem}" for problem in problems)
        super().__init__("\n".join(lines))


# ============================================================
# SCENARIOS (4 what-if options)
# ============================================================

SCENARIOS: List[ImpactScenario] = [
    ImpactScenario(
        id="FULL_DECOM",
        label="Full Decommission Immediately",
        description=(
            "Complete mailbox + SOAP API shutdown. All consumers must migrate to "
            "REST API or alternative channels."
        ),
        impact_multiplier=1.0,
        risk_level="critical",
    ),
    ImpactScenario(
        id="DECOM_WITH_MIGRATION",
        label="Decommission with 12-Month Migration Window",
        description=(
            "Gradual shutdown with migration support. REST API provided, legacy "
            "clients given 12 months to transition."
        ),
        impact_multiplier=0.7,
        risk_level="high",
    ),
    ImpactScenario(
        id="DECOM_SOAP_ONLY",
        label="SOAP API Decommission Only",
        description="Keep mailbox active, shutdown only SOAP endpoints. Mailbox consumers unaffected.",
        impact_multiplier=0.3,
        risk_level="medium",
    ),
    ImpactScenario(
        id="PROTOCOL_UPGRADE",
        label="Protocol Upgrade (Keep Mailbox)",
        description=(
            "Upgrade to TLS 1.3 + OAuth2, keep mailbox + SOAP. Legacy clients need "
            "auth update only."
        ),
        impact_multiplier=0.15,
        risk_level="low",
    ),
]


# ============================================================
# CONSUMER SYSTEMS (16 dependent systems)
# ============================================================

def _system(system_id: str, name: str, description: str, criticality: str) -> ConsumerSystem:
    return ConsumerSystem(id=system_id, name=name, description=description, criticality=criticality)


CONSUMER_SYSTEMS: List[ConsumerSystem] = [
    _system("sys_01", "Core Banking Engine", "Transaction processing hub", "critical"),
    _system("sys_02", "Payment Gateway", "Cross-border payment routing", "critical"),
    _system("sys_03", "Risk Management Platform", "AML/KYC risk scoring", "high"),
    _system("sys_04", "CRM System", "Client relationship data", "high"),
    _system("sys_05", "Reporting Engine", "Regulatory reporting", "high"),
    _system("sys_06", "Trade Finance Platform", "Letter of credit processing", "medium"),
    _system("sys_07", "Mobile Banking App", "Retail mobile interface", "high"),
    _system("sys_08", "Wealth Management Portal", "Investment tracking", "medium"),
    _system("sys_09", "Compliance Monitoring", "Transaction surveillance", "high"),
    _system("sys_10", "Data Warehouse ETL", "Analytics pipeline", "medium"),
    _system("sys_11", "External Partner API", "3rd party integrations", "medium"),
    _system("sys_12", "Notification Service", "Email/SMS alerts", "low"),
    _system("sys_13", "Audit Logging System", "Compliance audit trail", "high"),
    _system("sys_14", "Document Management", "Contract storage", "medium"),
    _system("sys_15", "Treasury System", "Liquidity management", "high"),
    _system("sys_16", "Legacy Batch Processor", "Overnight reconciliation", "low"),
]


# ============================================================
# BUSINESS SCENARIOS (16 high-value use cases)
# ============================================================

# Segment codes: PB, PFA, WM, CIC, FIM. Region codes: CH, APAC, EMEA.
_EVEN_SEGMENTS = {"PB": 0.2, "PFA": 0.2, "WM": 0.2, "CIC": 0.2, "FIM": 0.2}

BUSINESS_SCENARIOS: List[BusinessScenario] = [
    BusinessScenario(
        id="biz_01",
        title="Private Banking Client Onboarding",
        description="KYC document submission + account setup workflow",
        segment_weight={"PB": 0.6, "PFA": 0.2, "WM": 0.15, "CIC": 0.03, "FIM": 0.02},
        region_weight={"CH": 0.5, "APAC": 0.3, "EMEA": 0.2},
        linked_systems=["sys_01", "sys_03", "sys_04", "sys_13"],
    ),
    BusinessScenario(
        id="biz_02",
        title="Cross-Border Wire Transfer",
        description="SWIFT message routing + FX conversion",
        segment_weight={"PB": 0.4, "PFA": 0.3, "WM": 0.15, "CIC": 0.1, "FIM": 0.05},
        region_weight={"CH": 0.4, "APAC": 0.35, "EMEA": 0.25},
        linked_systems=["sys_02", "sys_09", "sys_13", "sys_15"],
    ),
    BusinessScenario(
        id="biz_03",
        title="AML Risk Score Update",
        description="Transaction pattern analysis + risk recalculation",
        segment_weight={"PB": 0.25, "PFA": 0.25, "WM": 0.2, "CIC": 0.15, "FIM": 0.15},
        region_weight={"CH": 0.5, "APAC": 0.3, "EMEA": 0.2},
        linked_systems=["sys_03", "sys_09", "sys_13"],
    ),
    BusinessScenario(
        id="biz_04",
        title="Regulatory Report Submission",
        description="Daily/monthly compliance reporting to authorities",
        segment_weight=dict(_EVEN_SEGMENTS),
        region_weight={"CH": 0.6, "APAC": 0.2, "EMEA": 0.2},
        linked_systems=["sys_05", "sys_13", "sys_14"],
    ),
    BusinessScenario(
        id="biz_05",
        title="Trade Finance Letter of Credit",
        description="L/C issuance + amendment + payment",
        segment_weight={"PB": 0.1, "PFA": 0.3, "WM": 0.05, "CIC": 0.45, "FIM": 0.1},
        region_weight={"CH": 0.3, "APAC": 0.5, "EMEA": 0.2},
        linked_systems=["sys_06", "sys_02", "sys_13"],
    ),
    BusinessScenario(
        id="biz_06",
        title="Mobile App Balance Inquiry",
        description="Real-time account balance + recent transactions",
        segment_weight={"PB": 0.5, "PFA": 0.25, "WM": 0.2, "CIC": 0.03, "FIM": 0.02},
        region_weight={"CH": 0.45, "APAC": 0.35, "EMEA": 0.2},
        linked_systems=["sys_07", "sys_01"],
    ),
    BusinessScenario(
        id="biz_07",
        title="Investment Portfolio Rebalancing",
        description="Asset allocation adjustment + trade execution",
        segment_weight={"PB": 0.3, "PFA": 0.2, "WM": 0.45, "CIC": 0.03, "FIM": 0.02},
        region_weight={"CH": 0.55, "APAC": 0.25, "EMEA": 0.2},
        linked_systems=["sys_08", "sys_15", "sys_01"],
    ),
    BusinessScenario(
        id="biz_08",
        title="Transaction Surveillance Alert",
        description="Suspicious activity detection + case creation",
        segment_weight={"PB": 0.2, "PFA": 0.25, "WM": 0.2, "CIC": 0.2, "FIM": 0.15},
        region_weight={"CH": 0.5, "APAC": 0.3, "EMEA": 0.2},
        linked_systems=["sys_09", "sys_03", "sys_13"],
    ),
    BusinessScenario(
        id="biz_09",
        title="End-of-Day Analytics Pipeline",
        description="Data extraction + warehouse load + report generation",
        segment_weight=dict(_EVEN_SEGMENTS),
        region_weight={"CH": 0.6, "APAC": 0.25, "EMEA": 0.15},
        linked_systems=["sys_10", "sys_05", "sys_01"],
    ),
    BusinessScenario(
        id="biz_10",
        title="Partner Bank Integration Sync",
        description="Third-party data exchange + reconciliation",
        segment_weight={"PB": 0.15, "PFA": 0.3, "WM": 0.15, "CIC": 0.25, "FIM": 0.15},
        region_weight={"CH": 0.4, "APAC": 0.35, "EMEA": 0.25},
        linked_systems=["sys_11", "sys_02", "sys_13"],
    ),
    BusinessScenario(
        id="biz_11",
        title="Client Notification Dispatch",
        description="Email/SMS alerts for transactions + statements",
        segment_weight={"PB": 0.35, "PFA": 0.3, "WM": 0.25, "CIC": 0.05, "FIM": 0.05},
        region_weight={"CH": 0.5, "APAC": 0.3, "EMEA": 0.2},
        linked_systems=["sys_12", "sys_07", "sys_01"],
    ),
    BusinessScenario(
        id="biz_12",
        title="Audit Trail Export",
        description="Compliance audit log extraction + archival",
        segment_weight=dict(_EVEN_SEGMENTS),
        region_weight={"CH": 0.6, "APAC": 0.2, "EMEA": 0.2},
        linked_systems=["sys_13", "sys_14", "sys_05"],
    ),
    BusinessScenario(
        id="biz_13",
        title="Contract Document Retrieval",
        description="Client agreement + amendment history lookup",
        segment_weight={"PB": 0.25, "PFA": 0.25, "WM": 0.25, "CIC": 0.15, "FIM": 0.1},
        region_weight={"CH": 0.5, "APAC": 0.3, "EMEA": 0.2},
        linked_systems=["sys_14", "sys_04"],
    ),
    BusinessScenario(
        id="biz_14",
        title="Liquidity Forecasting Update",
        description="Treasury cash position + reserve calculation",
        segment_weight={"PB": 0.1, "PFA": 0.2, "WM": 0.1, "CIC": 0.3, "FIM": 0.3},
        region_weight={"CH": 0.6, "APAC": 0.25, "EMEA": 0.15},
        linked_systems=["sys_15", "sys_01", "sys_02"],
    ),
    BusinessScenario(
        id="biz_15",
        title="Overnight Batch Reconciliation",
        description="Legacy system end-of-day balance matching",
        segment_weight=dict(_EVEN_SEGMENTS),
        region_weight={"CH": 0.65, "APAC": 0.2, "EMEA": 0.15},
        linked_systems=["sys_16", "sys_01", "sys_10"],
    ),
    BusinessScenario(
        id="biz_16",
        title="Client Data Privacy Request",
        description="GDPR/CCPA data export + deletion workflow",
        segment_weight={"PB": 0.3, "PFA": 0.25, "WM": 0.25, "CIC": 0.1, "FIM": 0.1},
        region_weight={"CH": 0.4, "APAC": 0.25, "EMEA": 0.35},
        linked_systems=["sys_04", "sys_13", "sys_14"],
    ),
]


# ============================================================
# BASE DISTRIBUTION (monthly message volume baseline)
# ============================================================

BASE_DISTRIBUTION = BaseDistribution(
    total_messages=1_500_000,
    segment_split={
        "PB": 0.50,   # Private Banking
        "PFA": 0.125,  # Private Family Advisors
        "WM": 0.125,  # Wealth Management
        "CIC": 0.125,  # Corporate & Institutional Clients
        "FIM": 0.125,  # Financial Institutions Management
    },
    region_split={
        "CH": 0.60,   # Switzerland
        "APAC": 0.25,  # Asia-Pacific
        "EMEA": 0.15,  # Europe/Middle East/Africa
    },
)


# ============================================================
# HEATMAP NODES (dependency map)
# ============================================================

def _node(node_id: str, label: str, x: int, y: int, deltas: Dict[str, RiskColor]) -> HeatmapNode:
    return HeatmapNode(id=node_id, label=label, x=x, y=y, base_risk="green", scenario_risk_deltas=deltas)


HEATMAP_NODES: List[HeatmapNode] = [
    _node("mailbox_core", "Mailbox Core", 400, 100, {
        "FULL_DECOM": "red", "DECOM_WITH_MIGRATION": "orange",
        "DECOM_SOAP_ONLY": "green", "PROTOCOL_UPGRADE": "yellow",
    }),
    _node("soap_api", "SOAP API", 250, 200, {
        "FULL_DECOM": "red", "DECOM_WITH_MIGRATION": "orange",
        "DECOM_SOAP_ONLY": "red", "PROTOCOL_UPGRADE": "yellow",
    }),
    _node("rest_api", "REST API", 550, 200, {
        "FULL_DECOM": "yellow", "DECOM_WITH_MIGRATION": "yellow",
        "DECOM_SOAP_ONLY": "green", "PROTOCOL_UPGRADE": "green",
    }),
    _node("auth_layer", "Auth Layer", 400, 300, {
        "FULL_DECOM": "orange", "DECOM_WITH_MIGRATION": "yellow",
        "DECOM_SOAP_ONLY": "green", "PROTOCOL_UPGRADE": "orange",
    }),
    _node("core_systems", "Core Systems", 200, 400, {
        "FULL_DECOM": "red", "DECOM_WITH_MIGRATION": "orange",
        "DECOM_SOAP_ONLY": "yellow", "PROTOCOL_UPGRADE": "yellow",
    }),
    _node("reporting", "Reporting", 400, 400, {
        "FULL_DECOM": "orange", "DECOM_WITH_MIGRATION": "yellow",
        "DECOM_SOAP_ONLY": "yellow", "PROTOCOL_UPGRADE": "green",
    }),
    _node("external_partners", "Ext Partners", 600, 400, {
        "FULL_DECOM": "red", "DECOM_WITH_MIGRATION": "orange",
        "DECOM_SOAP_ONLY": "orange", "PROTOCOL_UPGRADE": "yellow",
    }),
]


DEFAULT_CATALOG = ScenarioCatalog(
    name="mailbox_decom",
    description="Mailbox / SOAP API decommissioning what-if analysis",
    scenarios=SCENARIOS,
    consumer_systems=CONSUMER_SYSTEMS,
    business_scenarios=BUSINESS_SCENARIOS,
    base_distribution=BASE_DISTRIBUTION,
    heatmap_nodes=HEATMAP_NODES,
)


# ============================================================
# PURE COMPUTATION: Impact Stats
# ============================================================

def _round_half_up(value: float) -> int:
    """Round .5 away from zero for positive volumes (round() would bank)."""
    return int(math.floor(value + 0.5))


def require_scenario(scenario_id: str, catalog: Optional[ScenarioCatalog] = None) -> ImpactScenario:
    """Return the catalog scenario or raise UnknownScenarioError."""
    catalog = catalog or DEFAULT_CATALOG
    scenario = catalog.get_scenario(scenario_id)
    if scenario is None:
        raise UnknownScenarioError(scenario_id, [s.id for s in catalog.scenarios])
    return scenario


def compute_impact_stats(
    scenario_id: str,
    catalog: Optional[ScenarioCatalog] = None,
    *,
    top_limit: Optional[int] = None,
) -> ImpactStats:
    """Compute the impact summary for ``scenario_id``.

    Formula:
    - total affected = round(base volume * scenario multiplier)
    - segment/region breakdowns = round(total affected * split share)
    - each business scenario scores sum(weight * segment share) +
      sum(weight * region share); estimated impact = round(score * total
      affected * multiplier)
    - business scenarios are ranked by estimated impact (descending, ties keep
      catalog order) and the top ``top_limit`` are kept

    Raises:
        UnknownScenarioError: If the id is not in the catalog
    """
    catalog = catalog or DEFAULT_CATALOG
    limit = top_limit if top_limit is not None else Config.TOP_AFFECTED_LIMIT
    scenario = require_scenario(scenario_id, catalog)
    base = catalog.base_distribution

    total_affected = _round_half_up(base.total_messages * scenario.impact_multiplier)

    by_segment = {
        segment: _round_half_up(total_affected * weight)
        for segment, weight in base.segment_split.items()
    }
    by_region = {
        region: _round_half_up(total_affected * weight)
        for region, weight in base.region_split.items()
    }

    scored: List[AffectedBusinessScenario] = []
    for business in catalog.business_scenarios:
        score = 0.0
        for segment, weight in business.segment_weight.items():
            score += weight * base.segment_split.get(segment, 0.0)
        for region, weight in business.region_weight.items():
            score += weight * base.region_split.get(region, 0.0)
        impact = _round_half_up(score * total_affected * scenario.impact_multiplier)
        scored.append(AffectedBusinessScenario(scenario=business, estimated_impact=impact))

    # sorted() is stable, so equal impacts stay in catalog order
    ranked = sorted(scored, key=lambda entry: entry.estimated_impact, reverse=True)

    return ImpactStats(
        scenario=scenario,
        total_messages_affected=total_affected,
        by_segment=by_segment,
        by_region=by_region,
        top_affected_scenarios=ranked[:limit],
    )


def heatmap_for_scenario(
    scenario_id: str, catalog: Optional[ScenarioCatalog] = None
) -> Dict[str, RiskColor]:
    """Map each heatmap node id to its risk colour under ``scenario_id``.

    Nodes without an explicit colour for the scenario keep their base risk.
    """
    catalog = catalog or DEFAULT_CATALOG
    require_scenario(scenario_id, catalog)
    return {
        node.id: node.scenario_risk_deltas.get(scenario_id, node.base_risk)
        for node in catalog.heatmap_nodes
    }


# ============================================================
# Catalog loading
# ============================================================

class CatalogLoader:
    """Load and validate scenario catalogs from JSON files.

    Directory structure:
    - Default: Config.CATALOG_DIR ({PROJECT_ROOT}/examples/catalogs)
    - Override via constructor: CatalogLoader(Path("/custom/catalogs"))
    - Catalog files: {catalog_name}.json

    Validation beyond the pydantic schema:
    - At least one scenario
    - Ids unique within scenarios, systems and business scenarios
    - Business scenarios link only to known consumer systems
    Raises CatalogValidationError listing every problem found.
    """

    def __init__(self, catalogs_dir: Optional[Path] = None):
        self.catalogs_dir = catalogs_dir or Config.CATALOG_DIR

    def load(self, catalog_name: str) -> ScenarioCatalog:
        """Load a catalog by name (without the .json extension).

        Raises:
            FileNotFoundError: If the catalog file doesn't exist
            CatalogValidationError: If the catalog is malformed
            json.JSONDecodeError: If the file contains invalid JSON
        """
        catalog_path = self.catalogs_dir / f"{catalog_name}.json"

        if not catalog_path.exists():
            raise FileNotFoundError(
                f"Catalog '{catalog_name}' not found at {catalog_path}"
            )

        data = json.loads(catalog_path.read_text())
        return self.from_dict(data, source=str(catalog_path))

    def from_dict(self, data: Dict[str, Any], *, source: str = "<dict>") -> ScenarioCatalog:
        """Validate a raw mapping and build a ScenarioCatalog."""
        try:
            catalog = ScenarioCatalog.model_validate(data)
        except ValidationError as exc:
            problems = [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            ]
            raise CatalogValidationError(source=source, problems=problems) from exc

        problems = validate_catalog(catalog)
        if problems:
            raise CatalogValidationError(source=source, problems=problems)
        return catalog


def validate_catalog(catalog: ScenarioCatalog) -> List[str]:
    """Return a list of consistency problems (empty when the catalog is usable)."""
    problems: List[str] = []

    if not catalog.scenarios:
        problems.append("catalog must define at least one scenario")

    for field_name, entries in (
        ("scenarios", catalog.scenarios),
        ("consumer_systems", catalog.consumer_systems),
        ("business_scenarios", catalog.business_scenarios),
    ):
        seen: set[str] = set()
        for entry in entries:
            if entry.id in seen:
                problems.append(f"{field_name}: duplicate id '{entry.id}'")
            seen.add(entry.id)

    system_ids = {system.id for system in catalog.consumer_systems}
    for business in catalog.business_scenarios:
        for system_id in business.linked_systems:
            if system_id not in system_ids:
                problems.append(
                    f"business_scenarios: '{business.id}' links unknown system '{system_id}'"
                )

    return problems
