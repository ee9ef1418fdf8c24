"""
Tests for the portfolio rollup.
"""
from gatepilot.engine import UNASSIGNED, GateFormWorkflow, StatusBoard, summarize_portfolio

from tests.conftest import complete_checklist, make_initiative


def test_empty_portfolio(repos, catalog) -> None:
    summary = summarize_portfolio(repos, catalog)
    assert summary.initiative_count == 0
    assert summary.by_gate == {gate: 0 for gate in catalog.gate_ids}
    assert summary.status_counts["cost"] == {"green": 0, "yellow": 0, "red": 0}
    assert summary.pending_reviews == 0


def test_totals_and_groupings(repos, catalog, sto) -> None:
    repos.initiatives.create(make_initiative("INIT-1", value_stream="Operations", l_gate="L3"))
    repos.initiatives.create(
        make_initiative("INIT-2", value_stream="Operations", l_gate="L1", budgeted_cost=50_000.0)
    )
    repos.initiatives.create(make_initiative("INIT-3", value_stream=None, l_gate=None))

    StatusBoard(repos.statuses, repos.initiatives).set(
        sto, "INIT-2", {"cost": "red", "benefit": "yellow", "timeline": "green", "scope": "green"}
    )

    summary = summarize_portfolio(repos, catalog)
    assert summary.initiative_count == 3
    assert summary.budgeted_cost == 250_000.0
    assert summary.targeted_benefit == 750_000.0

    ops = summary.by_value_stream["Operations"]
    assert ops.initiative_count == 2
    assert ops.budgeted_cost == 150_000.0
    assert summary.by_value_stream[UNASSIGNED].initiative_count == 1

    assert summary.by_gate["L3"] == 1
    assert summary.by_gate["L1"] == 1
    assert summary.by_gate["L0"] == 0
    assert summary.by_gate[UNASSIGNED] == 1

    assert summary.status_counts["cost"] == {"green": 2, "yellow": 0, "red": 1}
    assert summary.status_counts["benefit"] == {"green": 2, "yellow": 1, "red": 0}
    assert summary.status_counts["scope"]["green"] == 3


def test_pending_reviews(repos, catalog, sto) -> None:
    repos.initiatives.create(make_initiative())
    workflow = GateFormWorkflow(repos.forms, catalog, repos.initiatives)
    form = workflow.save_draft(sto, "INIT-1", "L3", complete_checklist(catalog, "L3"), 0)
    workflow.submit(sto, "INIT-1", "L3", expected_version=form.version)
    workflow.save_draft(sto, "INIT-1", "L2", {"objectives": "x"}, 0)

    assert summarize_portfolio(repos, catalog).pending_reviews == 1


def test_to_dict_is_plain(repos, catalog) -> None:
    repos.initiatives.create(make_initiative())
    data = summarize_portfolio(repos, catalog).to_dict()
    assert data["by_value_stream"]["Operations"] == {
        "initiative_count": 1,
        "budgeted_cost": 100_000.0,
        "targeted_benefit": 250_000.0,
    }
    assert data["by_gate"]["L3"] == 1
