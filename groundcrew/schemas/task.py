"""
Checklist task schemas.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as SchemaValidationError

from groundcrew.exceptions import ValidationError
from groundcrew.models.crew import CrewRole
from groundcrew.models.task import TaskRecord, TaskStatus
from groundcrew.schemas.crew import CrewMember
from groundcrew.utils.clock import as_utc


class DelayReport(BaseModel):
    """Structured delay explanation embedded in a Delayed task"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    reason: str
    estimated_delay_minutes: int = Field(..., alias="estimatedDelayMinutes", gt=0)
    reported_by: CrewMember = Field(..., alias="reportedBy")
    delay_timestamp: datetime = Field(..., alias="delayTimestamp")

    @field_validator("reason")
    @classmethod
    def _reason_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("delay reason must not be empty")
        return value


class Task(BaseModel):
    """
    One checklist item of a turnaround.
    Completion fields exist only while Completed, the delay report only
    while Delayed.
    """
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(..., alias="id")
    turnaround_id: str = Field(..., alias="turnaroundId")
    name: str
    assigned_role: CrewRole = Field(..., alias="assignedRole")
    assigned_to: CrewMember = Field(..., alias="assignedTo")
    sequence: int = Field(..., gt=0)
    status: TaskStatus = TaskStatus.PENDING
    is_delayed: bool = Field(False, alias="isDelayed")
    completed_by: Optional[CrewMember] = Field(None, alias="completedBy")
    completion_time: Optional[datetime] = Field(None, alias="completionTime")
    delay_report: Optional[DelayReport] = Field(None, alias="delayReport")

    @model_validator(mode="after")
    def _check_lifecycle_fields(self) -> "Task":
        completed = self.status == TaskStatus.COMPLETED
        delayed = self.status == TaskStatus.DELAYED
        has_completion = self.completed_by is not None or self.completion_time is not None
        if completed and (self.completed_by is None or self.completion_time is None):
            raise ValueError("completed task requires completedBy and completionTime")
        if has_completion and not completed:
            raise ValueError(f"{self.status.value} task must not carry completion fields")
        if delayed != (self.delay_report is not None):
            raise ValueError("delay report must be present exactly when the task is Delayed")
        if self.is_delayed != delayed:
            raise ValueError("isDelayed must mirror status == Delayed")
        return self

    def to_document(self) -> dict:
        """Flat persisted shape of turnarounds/{id}/tasks/{taskId}"""
        report = self.delay_report
        return {
            "name": self.name,
            "assignedRole": self.assigned_role.value,
            "assignedTo": self.assigned_to.identity(),
            "status": self.status.value,
            "isDelayed": self.is_delayed,
            "sequence": self.sequence,
            "completedBy": self.completed_by.identity() if self.completed_by else None,
            "completionTime": self.completion_time,
            "delayReason": report.reason if report else None,
            "delayTimestamp": report.delay_timestamp if report else None,
            "estimatedDelayMinutes": report.estimated_delay_minutes if report else None,
            "reportedBy": report.reported_by.to_document() if report else None,
        }

    @classmethod
    def from_document(cls, task_id: str, turnaround_id: str, data: dict) -> "Task":
        """
        Build a task from its flat document.

        Raises:
            ValidationError: the stored document violates the lifecycle invariants
        """
        report = None
        if data.get("status") == TaskStatus.DELAYED.value:
            report = {
                "reason": data.get("delayReason") or "",
                "estimatedDelayMinutes": data.get("estimatedDelayMinutes"),
                "reportedBy": data.get("reportedBy"),
                "delayTimestamp": as_utc(data.get("delayTimestamp")),
            }
        try:
            return cls(
                task_id=task_id,
                turnaround_id=turnaround_id,
                name=data["name"],
                assigned_role=data["assignedRole"],
                assigned_to=CrewMember.from_document(data["assignedTo"]),
                sequence=data["sequence"],
                status=data.get("status", TaskStatus.PENDING.value),
                is_delayed=bool(data.get("isDelayed", False)),
                completed_by=CrewMember.from_document(data.get("completedBy")),
                completion_time=as_utc(data.get("completionTime")),
                delay_report=report,
            )
        except SchemaValidationError as e:
            raise ValidationError(f"Task {task_id} document is inconsistent: {e}") from e

    @classmethod
    def from_record(cls, record: TaskRecord) -> "Task":
        return cls.from_document(
            record.task_id,
            record.turnaround_id,
            {
                "name": record.name,
                "assignedRole": record.assigned_role,
                "assignedTo": record.assigned_to,
                "status": record.status,
                "isDelayed": record.is_delayed,
                "sequence": record.sequence,
                "completedBy": record.completed_by,
                "completionTime": record.completion_time,
                "delayReason": record.delay_reason,
                "delayTimestamp": record.delay_timestamp,
                "estimatedDelayMinutes": record.estimated_delay_minutes,
                "reportedBy": record.reported_by,
            },
        )
