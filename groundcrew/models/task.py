from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
import enum
import uuid
from groundcrew.database import Base


class TaskStatus(str, enum.Enum):
    """Checklist task lifecycle status"""
    PENDING = "Pending"
    COMPLETED = "Completed"
    DELAYED = "Delayed"


def _new_id() -> str:
    return uuid.uuid4().hex


class TaskRecord(Base):
    """
    Checklist task document (turnarounds/{id}/tasks/{taskId}).
    """
    __tablename__ = "turnaround_tasks"

    # Primary key
    task_id = Column(String(32), primary_key=True, default=_new_id, doc="Task ID")

    # Parent turnaround
    turnaround_id = Column(
        String(32),
        ForeignKey('turnarounds.turnaround_id', ondelete='CASCADE'),
        nullable=False,
        index=True,
        doc="Owning turnaround"
    )

    # Checklist item
    name = Column(String(200), nullable=False, doc="Task name")
    assigned_role = Column(String(32), nullable=False, doc="Crew role expected to perform the task")
    assigned_to = Column(JSON, nullable=False, doc="{uid, name} of the assignee")
    sequence = Column(Integer, nullable=False, doc="Display order within the turnaround")

    # Lifecycle
    status = Column(String(20), nullable=False, default=TaskStatus.PENDING.value, index=True, doc="Task status")
    is_delayed = Column(Boolean, nullable=False, default=False, doc="Mirror of status == Delayed")

    # Completion
    completed_by = Column(JSON, nullable=True, doc="{uid, name} of the completing actor")
    completion_time = Column(DateTime(timezone=True), nullable=True, doc="Completion timestamp")

    # Delay report
    delay_reason = Column(Text, nullable=True, doc="Reported delay reason")
    delay_timestamp = Column(DateTime(timezone=True), nullable=True, doc="Delay report timestamp")
    estimated_delay_minutes = Column(Integer, nullable=True, doc="Estimated delay in minutes")
    reported_by = Column(JSON, nullable=True, doc="{uid, name, role} of the reporter")

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now(), doc="Record creation timestamp")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), doc="Record update timestamp")

    __table_args__ = (
        UniqueConstraint('turnaround_id', 'sequence', name='uq_task_sequence'),
    )

    def __repr__(self):
        return f"<TaskRecord(id={self.task_id}, name={self.name}, status={self.status})>"
