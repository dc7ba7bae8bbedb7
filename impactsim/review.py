"""
Post-run agentic review for the impact simulator.

Deterministic summary metrics and narrative text shown after a run finishes.
No LLM calls, no I/O: pure string interpolation over the revealed consumer
systems.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from .schemas import ConsumerSystem


SEVERITY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3}

CLOSING_LINE = "You may type RESET to run another scenario analysis or EXIT to close this analyzer."


@dataclass(frozen=True)
class ImpactReview:
    """Derived metrics over the systems a scenario touches."""

    total: int
    critical_count: int
    high_count: int
    medium_count: int
    low_count: int
    top_impacted: List[ConsumerSystem] = field(default_factory=list)
    critical_names: str = ""

    @property
    def risk_veto(self) -> bool:
        """Any critical dependency vetoes automatic approval."""
        return self.critical_count > 0

    @property
    def decision(self) -> str:
        return "Conditional Approval" if self.risk_veto else "Auto-Approval Eligible"

    @property
    def top_names(self) -> str:
        return ", ".join(system.name for system in self.top_impacted)


def build_impact_review(systems: Sequence[ConsumerSystem], *, top_n: int = 3) -> ImpactReview:
    """Compute review metrics for ``systems``.

    Top impacted systems are ordered critical > high > medium > low; ties keep
    their input order. ``critical_names`` lists the first two critical systems.
    """
    counts = {level: 0 for level in SEVERITY_RANK}
    for system in systems:
        counts[system.criticality] += 1

    # sorted() is stable, so equal severities keep input order
    ranked = sorted(systems, key=lambda system: SEVERITY_RANK[system.criticality])
    critical = [system for system in systems if system.criticality == "critical"]

    return ImpactReview(
        total=len(systems),
        critical_count=counts["critical"],
        high_count=counts["high"],
        medium_count=counts["medium"],
        low_count=counts["low"],
        top_impacted=list(ranked[:top_n]),
        critical_names=", ".join(system.name for system in critical[:2]),
    )


def _critical_phrase(count: int) -> str:
    return "one critical system" if count == 1 else f"{count} critical systems"


def generate_impact_synthesis(
    systems: Sequence[ConsumerSystem],
    scenario_title: str,
    scenario_id: str,
) -> str:
    """Render the narrative review for a finished run.

    Three variants: FULL_DECOM is not recommended, DECOM_WITH_MIGRATION is
    medium risk with a phased plan, every other scenario gets the conditional
    approval pathway.
    """
    review = build_impact_review(systems)
    critical = _critical_phrase(review.critical_count)
    names = review.critical_names

    header = [
        "**Agentic IT Impact Review: Analysis Complete**",
        "",
        f"**Scenario Assessed:** {scenario_title}",
        "",
    ]

    if scenario_id == "FULL_DECOM":
        body = [
            "**Overall Assessment: NOT RECOMMENDED (HIGHLY RISKY)**",
            "",
            "**Executive Summary:**",
            "",
            "The multi-agent impact analysis strongly advises against immediate full "
            "decommissioning without a migration window. It would achieve the fastest "
            "technical debt reduction but introduces unacceptable business continuity "
            "and regulatory compliance risks.",
            "",
            f"The review identified {critical} with hard dependencies on the mailbox "
            f"infrastructure: {names}. Additionally, {review.high_count} high-priority "
            "systems would experience immediate service disruption.",
            "",
            "**Critical Risk Factors:**",
            "",
            f"Immediate decommissioning would force all {review.total} dependent systems "
            "to fail over to alternative channels with no preparation time. Systems like "
            f"{names} maintain legally-required audit continuity that cannot be interrupted.",
            "",
            "**Recommendation:**",
            "",
            "This scenario is not viable for production deployment. Consider scenarios with "
            "migration windows that allow consumer readiness validation, parallel routing "
            "setup and compliance continuity planning.",
        ]
    elif scenario_id == "DECOM_WITH_MIGRATION":
        veto = (
            " The risk veto mechanism requires explicit approval gates for critical system "
            "migrations before final decommissioning proceeds."
            if review.risk_veto
            else ""
        )
        body = [
            "**Overall Assessment: MEDIUM BUSINESS RISK DETECTED (RISK LEVEL MEDIUM)**",
            "",
            "**Executive Summary:**",
            "",
            "A 12-month migration window provides a viable pathway for decommissioning, "
            "though significant coordination will be required throughout the transition.",
            "",
            f"The review identified {critical} requiring migration support: {names}. "
            f"Additionally, {review.high_count} high-priority systems will need structured "
            "transition planning.",
            "",
            "**Recommendation:**",
            "",
            "Conditionally approved for planning, subject to formal migration governance. "
            "Phase 1 (Months 1-3): retention export validation and parallel routing setup. "
            f"Phase 2 (Months 4-9): progressive consumer migration, prioritising {names}. "
            "Phase 3 (Months 10-12): final cutover once all critical consumers confirm "
            f"readiness.{veto}",
        ]
    else:
        veto = ""
        if review.risk_veto:
            dependency = "dependency" if review.critical_count == 1 else "dependencies"
            veto = (
                f" The risk veto mechanism has been triggered due to the "
                f"{review.critical_count} critical {dependency} requiring explicit approval "
                "before proceeding."
            )
        body = [
            "**Executive Summary:**",
            "",
            "The proposed change is technically feasible and would reduce ongoing "
            "operational overhead, but downstream dependencies introduce business "
            "continuity risk.",
            "",
            f"The review identified {critical} currently reliant on the mailbox "
            f"infrastructure: {names}. Additionally, {review.high_count} high-priority "
            "systems maintain dependencies on the current workflow patterns.",
            "",
            "**Recommendation:**",
            "",
            "The synthesis supports a conditional approval pathway: complete retention "
            "export validation and parallel routing first, then targeted consumer contract "
            f"updates for the critical systems identified above.{veto}",
            "",
            "**Next Steps:**",
            "",
            "Phase 1 focuses on retention export validation and parallel routing. "
            f"Phase 2 addresses consumer contract updates for {names}. Phase 3 executes the "
            "final change only after critical consumer readiness confirmation.",
        ]

    return "\n".join([*header, *body, "", "---", "", CLOSING_LINE])
