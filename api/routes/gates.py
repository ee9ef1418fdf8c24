"""Gate catalog and access matrix endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from gatepilot.engine import access_matrix

from api.deps import Services, get_services
from api.schemas.responses import GateResponse

router = APIRouter(prefix="/api", tags=["Gates"])


@router.get("/gates", response_model=list[GateResponse])
def list_gates(services: Services = Depends(get_services)):
    """The L0-L6 gates and their requirement checklists."""
    return [GateResponse.from_domain(g) for g in services.catalog.gates]


@router.get("/gates/{gate}", response_model=GateResponse)
def get_gate(gate: str, services: Services = Depends(get_services)):
    return GateResponse.from_domain(services.workflow.gate(gate))


@router.get("/access-matrix")
async def get_access_matrix() -> dict[str, Any]:
    """
    Role x status access table.

    Returns {role: {status: {can_view, can_edit, can_approve, can_request_change}}}
    """
    return access_matrix()
