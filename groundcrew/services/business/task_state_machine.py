"""
Task State Machine.
Applies checklist task status transitions on behalf of an explicit actor.
"""
import logging
from datetime import datetime
from typing import Callable, Optional, Union

from groundcrew.core.metrics import task_actions_rejected_total, task_transitions_total
from groundcrew.exceptions import InvalidTransitionError, ValidationError
from groundcrew.models.task import TaskStatus
from groundcrew.models.turnaround import TurnaroundStatus
from groundcrew.schemas.crew import CrewMember
from groundcrew.schemas.task import Task
from groundcrew.services.business.authorization import ensure_can_transition
from groundcrew.services.store.document_store import DocumentStore
from groundcrew.utils.clock import utc_now

logger = logging.getLogger(__name__)

COMPLETE = "complete"
UNCOMPLETE = "uncomplete"
REPORT_DELAY = "report_delay"
CLEAR_DELAY = "clear_delay"

# Legal source states per event
ALLOWED_SOURCES: dict[str, set[TaskStatus]] = {
    COMPLETE: {TaskStatus.PENDING, TaskStatus.DELAYED},
    UNCOMPLETE: {TaskStatus.COMPLETED},
    REPORT_DELAY: {TaskStatus.PENDING, TaskStatus.DELAYED, TaskStatus.COMPLETED},
    CLEAR_DELAY: {TaskStatus.DELAYED},
}

# Events that are no-ops when the task already sits in their target state
IDEMPOTENT_TARGETS: dict[str, TaskStatus] = {
    COMPLETE: TaskStatus.COMPLETED,
    UNCOMPLETE: TaskStatus.PENDING,
    CLEAR_DELAY: TaskStatus.PENDING,
}


def _cleared_fields() -> dict:
    """
    Every lifecycle field reset.
    Transitions always write the whole set so a concurrent last write
    replaces the lifecycle state wholesale.
    """
    return {
        "status": TaskStatus.PENDING.value,
        "isDelayed": False,
        "completedBy": None,
        "completionTime": None,
        "delayReason": None,
        "delayTimestamp": None,
        "estimatedDelayMinutes": None,
        "reportedBy": None,
    }


def parse_estimated_minutes(value: Union[int, str, None]) -> int:
    """
    Parse the estimated delay entered by the crew member.

    Raises:
        ValidationError: value is missing, non-numeric or not positive
    """
    if isinstance(value, bool) or value is None:
        minutes = None
    elif isinstance(value, int):
        minutes = value
    elif isinstance(value, float) and value.is_integer():
        minutes = int(value)
    elif isinstance(value, str):
        try:
            minutes = int(value.strip())
        except ValueError:
            minutes = None
    else:
        minutes = None

    if minutes is None or minutes <= 0:
        raise ValidationError(
            f"Estimated delay must be a positive whole number of minutes, got {value!r}",
            user_message="Please provide a valid estimated delay time in minutes."
        )
    return minutes


def validate_delay_reason(reason: Optional[str]) -> str:
    """
    Raises:
        ValidationError: reason is empty or whitespace only
    """
    if reason is None or not reason.strip():
        raise ValidationError(
            "Delay reason must not be empty",
            user_message="Please provide a reason for the delay."
        )
    return reason.strip()


class TaskStateMachine:
    """
    Governs legal task transitions and the fields each one sets or clears.
    Each transition is a single merge of the full lifecycle field set; the
    turnaround is only touched when a delay is reported.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def complete(self, actor: CrewMember, turnaround_id: str, task_id: str) -> Task:
        """Mark a task Completed by the actor"""
        def fields(task: Task, now: datetime) -> dict:
            return {
                **_cleared_fields(),
                "status": TaskStatus.COMPLETED.value,
                "completedBy": actor.identity(),
                "completionTime": now,
            }

        return await self._apply(actor, turnaround_id, task_id, COMPLETE, fields)

    async def uncomplete(self, actor: CrewMember, turnaround_id: str, task_id: str) -> Task:
        """Return a Completed task to Pending"""
        return await self._apply(
            actor, turnaround_id, task_id, UNCOMPLETE, lambda task, now: _cleared_fields()
        )

    async def clear_delay(self, actor: CrewMember, turnaround_id: str, task_id: str) -> Task:
        """Return a Delayed task to Pending; the turnaround status is left alone"""
        return await self._apply(
            actor, turnaround_id, task_id, CLEAR_DELAY, lambda task, now: _cleared_fields()
        )

    async def report_delay(
        self,
        actor: CrewMember,
        turnaround_id: str,
        task_id: str,
        reason: Optional[str],
        estimated_minutes: Union[int, str, None]
    ) -> Task:
        """
        Mark a task Delayed with a delay report and force the owning
        turnaround to Delayed.

        Args:
            actor: Crew member reporting the delay
            turnaround_id: Owning turnaround
            task_id: Task to delay
            reason: Free-text reason, must not be empty
            estimated_minutes: Positive whole number of minutes

        Raises:
            NotFoundError: task or turnaround missing
            AuthorizationError: actor may not change the task
            ValidationError: reason or estimate rejected, nothing written
        """
        def fields(task: Task, now: datetime) -> dict:
            try:
                clean_reason = validate_delay_reason(reason)
                minutes = parse_estimated_minutes(estimated_minutes)
            except ValidationError:
                task_actions_rejected_total.labels(event=REPORT_DELAY, reason="invalid_input").inc()
                logger.info(
                    f"Rejected delay report on task {task.task_id}: invalid input",
                    extra={"actor_uid": actor.uid, "task_id": task.task_id}
                )
                raise
            return {
                **_cleared_fields(),
                "status": TaskStatus.DELAYED.value,
                "isDelayed": True,
                "delayReason": clean_reason,
                "delayTimestamp": now,
                "estimatedDelayMinutes": minutes,
                "reportedBy": actor.to_document(),
            }

        task = await self._apply(actor, turnaround_id, task_id, REPORT_DELAY, fields)
        await self._mark_turnaround_delayed(turnaround_id)
        return task

    async def _mark_turnaround_delayed(self, turnaround_id: str) -> None:
        # Separate write, no transaction with the task update
        turnaround = await self.store.get_turnaround(turnaround_id)
        if turnaround.status == TurnaroundStatus.DELAYED:
            return

        await self.store.merge_turnaround(
            turnaround_id,
            {"status": TurnaroundStatus.DELAYED.value, "lastUpdated": utc_now()}
        )
        logger.info(
            f"Turnaround {turnaround_id} marked Delayed",
            extra={"turnaround_id": turnaround_id, "previous_status": turnaround.status.value}
        )

    async def _apply(
        self,
        actor: CrewMember,
        turnaround_id: str,
        task_id: str,
        event: str,
        build_fields: Callable[[Task, datetime], dict]
    ) -> Task:
        task = await self.store.get_task(turnaround_id, task_id)
        ensure_can_transition(actor, task, event)

        target = IDEMPOTENT_TARGETS.get(event)
        if target is not None and task.status == target:
            logger.debug(f"Task {task_id} already {target.value}, {event} ignored")
            return task

        if task.status not in ALLOWED_SOURCES[event]:
            task_actions_rejected_total.labels(event=event, reason="invalid_transition").inc()
            logger.info(
                f"Rejected {event} on task {task_id} in status {task.status.value}",
                extra={"actor_uid": actor.uid, "task_id": task_id}
            )
            raise InvalidTransitionError(task.status.value, event)

        fields = build_fields(task, utc_now())
        updated = Task.from_document(task_id, turnaround_id, {**task.to_document(), **fields})

        await self.store.merge_task(turnaround_id, task_id, fields)

        task_transitions_total.labels(event=event).inc()
        logger.info(
            f"Task {task.name!r} {task.status.value} -> {updated.status.value}",
            extra={
                "event": event,
                "actor_uid": actor.uid,
                "turnaround_id": turnaround_id,
                "task_id": task_id,
            }
        )
        return updated
