"""
GatePilot Portfolio Rollup

Read-only aggregation across every initiative: financial totals, the
spread of initiatives over the L-Gates and the red/yellow/green counts
per status axis. Initiatives without a stored status row count as green
on every axis.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..models import FormStatus, GateCatalog, RAGStatus, StatusAxis
from ..storage import Repositories

UNASSIGNED = "unassigned"


@dataclass
class ValueStreamTotals:
    initiative_count: int = 0
    budgeted_cost: float = 0.0
    targeted_benefit: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "initiative_count": self.initiative_count,
            "budgeted_cost": self.budgeted_cost,
            "targeted_benefit": self.targeted_benefit,
        }


@dataclass
class PortfolioSummary:
    """Portfolio-wide rollup."""
    initiative_count: int = 0
    budgeted_cost: float = 0.0
    targeted_benefit: float = 0.0
    by_value_stream: dict[str, ValueStreamTotals] = field(default_factory=dict)
    by_gate: dict[str, int] = field(default_factory=dict)
    status_counts: dict[str, dict[str, int]] = field(default_factory=dict)
    pending_reviews: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "initiative_count": self.initiative_count,
            "budgeted_cost": self.budgeted_cost,
            "targeted_benefit": self.targeted_benefit,
            "by_value_stream": {k: v.to_dict() for k, v in self.by_value_stream.items()},
            "by_gate": dict(self.by_gate),
            "status_counts": {k: dict(v) for k, v in self.status_counts.items()},
            "pending_reviews": self.pending_reviews,
        }


def summarize_portfolio(
    repos: Repositories,
    catalog: Optional[GateCatalog] = None,
) -> PortfolioSummary:
    """
    Build the portfolio summary from the current store contents.

    ``by_gate`` lists every catalog gate (zero when empty) plus
    "unassigned" for initiatives with no gate set.
    """
    initiatives = repos.initiatives.list_all()
    statuses = {s.initiative_id: s for s in repos.statuses.list_all()}

    summary = PortfolioSummary(initiative_count=len(initiatives))
    if catalog is not None:
        summary.by_gate = {gate_id: 0 for gate_id in catalog.gate_ids}
    summary.status_counts = {
        axis.value: {rag.value: 0 for rag in RAGStatus} for axis in StatusAxis
    }

    for initiative in initiatives:
        summary.budgeted_cost += initiative.budgeted_cost
        summary.targeted_benefit += initiative.targeted_benefit

        stream = initiative.value_stream or UNASSIGNED
        totals = summary.by_value_stream.setdefault(stream, ValueStreamTotals())
        totals.initiative_count += 1
        totals.budgeted_cost += initiative.budgeted_cost
        totals.targeted_benefit += initiative.targeted_benefit

        gate = initiative.l_gate or UNASSIGNED
        summary.by_gate[gate] = summary.by_gate.get(gate, 0) + 1

        status = statuses.get(initiative.id)
        for axis in StatusAxis:
            rag = status.axis(axis) if status else RAGStatus.GREEN
            summary.status_counts[axis.value][rag.value] += 1

    summary.pending_reviews = len(repos.forms.list_by_status(FormStatus.SUBMITTED))
    return summary
