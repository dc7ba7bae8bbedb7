"""Tests for the post-run impact review text."""

from impactsim.catalog import CONSUMER_SYSTEMS
from impactsim.review import CLOSING_LINE, build_impact_review, generate_impact_synthesis
from impactsim.schemas import ConsumerSystem


def test_review_metrics_for_default_systems():
    review = build_impact_review(CONSUMER_SYSTEMS)

    assert review.total == 16
    assert (review.critical_count, review.high_count, review.medium_count, review.low_count) == (
        2,
        7,
        5,
        2,
    )
    assert review.top_names == "Core Banking Engine, Payment Gateway, Risk Management Platform"
    assert review.critical_names == "Core Banking Engine, Payment Gateway"
    assert review.risk_veto
    assert review.decision == "Conditional Approval"


def test_ranking_is_stable_within_severity():
    systems = [
        ConsumerSystem(id="a", name="Alpha", description="", criticality="medium"),
        ConsumerSystem(id="b", name="Bravo", description="", criticality="high"),
        ConsumerSystem(id="c", name="Charlie", description="", criticality="medium"),
        ConsumerSystem(id="d", name="Delta", description="", criticality="high"),
    ]
    review = build_impact_review(systems)

    assert review.top_names == "Bravo, Delta, Alpha"
    assert not review.risk_veto
    assert review.decision == "Auto-Approval Eligible"


def test_empty_review():
    review = build_impact_review([])
    assert review.total == 0
    assert review.top_impacted == []
    assert review.critical_names == ""


def test_full_decom_synthesis():
    text = generate_impact_synthesis(CONSUMER_SYSTEMS, "Full Decommission Immediately", "FULL_DECOM")

    assert "**Scenario Assessed:** Full Decommission Immediately" in text
    assert "NOT RECOMMENDED (HIGHLY RISKY)" in text
    assert "2 critical systems" in text
    assert "all 16 dependent systems" in text
    assert text.endswith(CLOSING_LINE)


def test_migration_synthesis_mentions_phases():
    text = generate_impact_synthesis(CONSUMER_SYSTEMS, "Migration", "DECOM_WITH_MIGRATION")

    assert "MEDIUM BUSINESS RISK DETECTED" in text
    assert "Phase 2 (Months 4-9)" in text
    assert "risk veto mechanism requires explicit approval gates" in text


def test_default_synthesis_veto_wording():
    one_critical = [
        ConsumerSystem(id="a", name="Ledger", description="", criticality="critical"),
        ConsumerSystem(id="b", name="Portal", description="", criticality="low"),
    ]
    text = generate_impact_synthesis(one_critical, "SOAP only", "DECOM_SOAP_ONLY")

    assert "one critical system currently reliant" in text
    assert "due to the 1 critical dependency requiring explicit approval" in text

    no_critical = generate_impact_synthesis(one_critical[1:], "SOAP only", "DECOM_SOAP_ONLY")
    assert "risk veto" not in no_critical
