"""
Aggregation endpoints.
Inspect and trigger the progress reconciliation sweep.
"""
from fastapi import APIRouter, Depends, HTTPException, Request

from groundcrew.api.v1.endpoints.auth import get_current_actor
from groundcrew.schemas.crew import CrewMember
from groundcrew.services.business.authorization import ensure_supervisor

router = APIRouter()


@router.post("/sweep")
async def trigger_sweep(
    request: Request,
    actor: CrewMember = Depends(get_current_actor)
):
    """
    Recompute progress for every turnaround now.
    Supervisor only.
    """
    ensure_supervisor(actor, "trigger progress sweep")

    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Aggregation is disabled")

    return await scheduler.trigger_manual_sweep()


@router.get("/status")
async def get_aggregation_status(
    request: Request,
    actor: CrewMember = Depends(get_current_actor)
):
    scheduler = getattr(request.app.state, "scheduler", None)
    aggregator = getattr(request.app.state, "aggregator", None)
    if scheduler is None or aggregator is None:
        return {"scheduler_running": False, "watched_turnarounds": []}

    return {
        **scheduler.get_status(),
        "watched_turnarounds": aggregator.watched_turnarounds,
    }
