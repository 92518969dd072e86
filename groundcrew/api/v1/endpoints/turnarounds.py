"""
Turnaround endpoints.
Dashboard listing, detail and the supervisor status override.
"""
from typing import List
from fastapi import APIRouter, Depends

from groundcrew.api.deps import get_turnaround_service
from groundcrew.api.v1.endpoints.auth import get_current_actor
from groundcrew.schemas.crew import CrewMember
from groundcrew.schemas.requests import TurnaroundStatusUpdate
from groundcrew.schemas.turnaround import Turnaround
from groundcrew.services.business.turnaround_service import TurnaroundService

router = APIRouter()


@router.get("", response_model=List[Turnaround])
async def list_turnarounds(
    actor: CrewMember = Depends(get_current_actor),
    service: TurnaroundService = Depends(get_turnaround_service)
):
    """
    List turnarounds visible to the current crew member.
    Supervisors see all of them.
    """
    return await service.visible_turnarounds(actor)


@router.get("/{turnaround_id}", response_model=Turnaround)
async def get_turnaround(
    turnaround_id: str,
    actor: CrewMember = Depends(get_current_actor),
    service: TurnaroundService = Depends(get_turnaround_service)
):
    return await service.get_turnaround(actor, turnaround_id)


@router.patch("/{turnaround_id}/status", response_model=Turnaround)
async def update_turnaround_status(
    turnaround_id: str,
    payload: TurnaroundStatusUpdate,
    actor: CrewMember = Depends(get_current_actor),
    service: TurnaroundService = Depends(get_turnaround_service)
):
    """
    Set the turnaround status explicitly.
    Supervisor only; this is how a Delayed turnaround is cleared.
    """
    return await service.update_status(actor, turnaround_id, payload.status)
