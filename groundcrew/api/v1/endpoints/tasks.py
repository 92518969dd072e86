"""
Checklist task endpoints.
Each action maps to one state machine transition.
"""
from typing import List
from fastapi import APIRouter, Depends

from groundcrew.api.deps import get_state_machine, get_turnaround_service
from groundcrew.api.v1.endpoints.auth import get_current_actor
from groundcrew.schemas.crew import CrewMember
from groundcrew.schemas.requests import DelayReportRequest
from groundcrew.schemas.task import Task
from groundcrew.services.business.task_state_machine import TaskStateMachine
from groundcrew.services.business.turnaround_service import TurnaroundService

router = APIRouter()


@router.get("/{turnaround_id}/tasks", response_model=List[Task])
async def list_tasks(
    turnaround_id: str,
    actor: CrewMember = Depends(get_current_actor),
    service: TurnaroundService = Depends(get_turnaround_service)
):
    """Checklist of a turnaround ordered by sequence"""
    return await service.list_tasks(actor, turnaround_id)


@router.post("/{turnaround_id}/tasks/{task_id}/complete", response_model=Task)
async def complete_task(
    turnaround_id: str,
    task_id: str,
    actor: CrewMember = Depends(get_current_actor),
    machine: TaskStateMachine = Depends(get_state_machine)
):
    return await machine.complete(actor, turnaround_id, task_id)


@router.post("/{turnaround_id}/tasks/{task_id}/uncomplete", response_model=Task)
async def uncomplete_task(
    turnaround_id: str,
    task_id: str,
    actor: CrewMember = Depends(get_current_actor),
    machine: TaskStateMachine = Depends(get_state_machine)
):
    return await machine.uncomplete(actor, turnaround_id, task_id)


@router.post("/{turnaround_id}/tasks/{task_id}/delay", response_model=Task)
async def report_task_delay(
    turnaround_id: str,
    task_id: str,
    payload: DelayReportRequest,
    actor: CrewMember = Depends(get_current_actor),
    machine: TaskStateMachine = Depends(get_state_machine)
):
    """
    Report a delay on a task.
    The owning turnaround is marked Delayed as well.
    """
    return await machine.report_delay(
        actor,
        turnaround_id,
        task_id,
        reason=payload.reason,
        estimated_minutes=payload.estimated_delay_minutes
    )


@router.post("/{turnaround_id}/tasks/{task_id}/clear-delay", response_model=Task)
async def clear_task_delay(
    turnaround_id: str,
    task_id: str,
    actor: CrewMember = Depends(get_current_actor),
    machine: TaskStateMachine = Depends(get_state_machine)
):
    return await machine.clear_delay(actor, turnaround_id, task_id)
