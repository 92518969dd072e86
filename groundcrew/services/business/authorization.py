"""
Authorization guard for task transitions.
A task may be changed by its assignee or by any supervisor; there is no
other delegation path.
"""
import logging

from groundcrew.core.metrics import task_actions_rejected_total
from groundcrew.exceptions import AuthorizationError
from groundcrew.schemas.crew import CrewMember
from groundcrew.schemas.task import Task

logger = logging.getLogger(__name__)


def can_transition(actor: CrewMember, task: Task) -> bool:
    """Check whether the actor may change the task's status"""
    return actor.uid == task.assigned_to.uid or actor.is_supervisor


def ensure_can_transition(actor: CrewMember, task: Task, event: str) -> None:
    """
    Raise AuthorizationError unless the actor may change the task.
    Refusals are expected and logged at INFO.
    """
    if can_transition(actor, task):
        return

    task_actions_rejected_total.labels(event=event, reason="not_assigned").inc()
    logger.info(
        f"Refused {event} on task {task.task_id}: not assigned to actor",
        extra={"actor_uid": actor.uid, "assignee_uid": task.assigned_to.uid, "task_id": task.task_id}
    )
    raise AuthorizationError(
        f"{actor.uid} may not {event} task {task.task_id} assigned to {task.assigned_to.uid}"
    )


def ensure_supervisor(actor: CrewMember, action: str) -> None:
    """Raise AuthorizationError unless the actor is a supervisor"""
    if actor.is_supervisor:
        return

    task_actions_rejected_total.labels(event=action, reason="not_supervisor").inc()
    logger.info(f"Refused {action}: supervisor role required", extra={"actor_uid": actor.uid})
    raise AuthorizationError(
        f"{actor.uid} may not {action}: supervisor role required",
        user_message="Only a supervisor can change the turnaround status."
    )
