"""
Pytest configuration and fixtures for GatePilot tests.

Provides helper factories and common fixtures matching actual model definitions.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from gatepilot.catalog import load_catalog
from gatepilot.engine import GateFormWorkflow, InitiativeService, StatusBoard
from gatepilot.models import (
    GateCatalog,
    Initiative,
    Milestone,
    MilestoneStatus,
    UserRole,
    UserRoleRecord,
)
from gatepilot.storage import Repositories, memory_repositories

from api.config import Settings
from api.main import create_app


# =============================================================================
# Factory Helpers
# =============================================================================

def make_user(user_id: str = "user-1", role: UserRole = UserRole.STO) -> UserRoleRecord:
    """Create a UserRoleRecord with required fields."""
    return UserRoleRecord(user_id=user_id, role=role)


def make_initiative(
    initiative_id: str = "INIT-1",
    name: str = "Claims Automation",
    value_stream: Optional[str] = "Operations",
    l_gate: Optional[str] = "L3",
    budgeted_cost: float = 100_000.0,
    targeted_benefit: float = 250_000.0,
) -> Initiative:
    """Create an Initiative with required fields."""
    return Initiative(
        id=initiative_id,
        name=name,
        value_stream=value_stream,
        l_gate=l_gate,
        priority_category="High",
        priority_rank=1,
        budgeted_cost=budgeted_cost,
        targeted_benefit=targeted_benefit,
        cost_center="CC-100",
    )


def make_milestone(
    initiative_id: str = "INIT-1",
    milestone_id: str = "ms-1",
    end_date: Optional[date] = None,
    status: MilestoneStatus = MilestoneStatus.IN_PROGRESS,
) -> Milestone:
    """Create a Milestone with required fields."""
    return Milestone(
        id=milestone_id,
        initiative_id=initiative_id,
        name="Pilot launch",
        start_date=date(2024, 1, 1),
        end_date=end_date or date(2024, 3, 31),
        status=status,
    )


def complete_checklist(
    catalog: GateCatalog,
    gate: str,
    **extra: Any,
) -> dict[str, Any]:
    """Form data with every required requirement of ``gate`` completed."""
    definition = catalog.get(gate)
    data: dict[str, Any] = {"requirements": {rid: True for rid in definition.required_ids}}
    data.update(extra)
    return data


class FixedClock:
    """Deterministic, advancing clock for workflow tests."""

    def __init__(self, start: Optional[datetime] = None, step: timedelta = timedelta(minutes=1)):
        self.current = start or datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


# =============================================================================
# Core Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def catalog() -> GateCatalog:
    """Bundled L0-L6 catalog."""
    return load_catalog()


@pytest.fixture
def repos() -> Repositories:
    """Empty in-memory stores."""
    return memory_repositories()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def initiative(repos: Repositories) -> Initiative:
    """INIT-1, stored."""
    return repos.initiatives.create(make_initiative())


@pytest.fixture
def workflow(repos: Repositories, catalog: GateCatalog, clock: FixedClock, initiative) -> GateFormWorkflow:
    return GateFormWorkflow(repos.forms, catalog, repos.initiatives, clock=clock)


@pytest.fixture
def status_board(repos: Repositories, initiative) -> StatusBoard:
    return StatusBoard(repos.statuses, repos.initiatives)


@pytest.fixture
def initiative_service(repos: Repositories, catalog: GateCatalog) -> InitiativeService:
    return InitiativeService(repos, catalog)


@pytest.fixture
def control_tower() -> UserRoleRecord:
    return make_user("ct-1", UserRole.CONTROL_TOWER)


@pytest.fixture
def sto() -> UserRoleRecord:
    return make_user("sto-1", UserRole.STO)


@pytest.fixture
def slt() -> UserRoleRecord:
    return make_user("slt-1", UserRole.SLT)


# =============================================================================
# API Fixtures
# =============================================================================

ADMIN = "admin"


def auth(user_id: str) -> dict[str, str]:
    """Request headers identifying ``user_id``."""
    return {"X-User-Id": user_id}


@pytest.fixture
def client(repos: Repositories, catalog: GateCatalog) -> TestClient:
    """
    TestClient over a fresh app.

    The first request registers ADMIN, making it control_tower; "sto-1"
    and "slt-1" are then registered and assigned their roles, and INIT-1
    is created.
    """
    app = create_app(Settings(), repositories=repos, catalog=catalog)
    test_client = TestClient(app)

    assert test_client.get("/api/user/role", headers=auth(ADMIN)).json()["role"] == "control_tower"
    for user_id, role in (("sto-1", "sto"), ("slt-1", "slt")):
        test_client.get("/api/user/role", headers=auth(user_id))
        resp = test_client.put(
            f"/api/user/{user_id}/role", json={"role": role}, headers=auth(ADMIN)
        )
        assert resp.status_code == 200

    resp = test_client.post(
        "/api/initiatives",
        json={
            "id": "INIT-1",
            "name": "Claims Automation",
            "valueStream": "Operations",
            "lGate": "L3",
            "budgetedCost": 100000,
            "targetedBenefit": 250000,
        },
        headers=auth(ADMIN),
    )
    assert resp.status_code == 201
    return test_client
