from sqlalchemy import Column, String, Integer, DateTime, JSON, CheckConstraint
from sqlalchemy.sql import func
import enum
import uuid
from groundcrew.database import Base


class TurnaroundStatus(str, enum.Enum):
    """Aggregate status of one aircraft turnaround"""
    ON_TIME = "On Time"
    IN_PROGRESS = "In Progress"
    DELAYED = "Delayed"
    COMPLETED = "Completed"


def _new_id() -> str:
    return uuid.uuid4().hex


class TurnaroundRecord(Base):
    """
    Turnaround document (turnarounds/{id}).
    One aircraft ground-service event at a gate.
    """
    __tablename__ = "turnarounds"

    # Primary key
    turnaround_id = Column(String(32), primary_key=True, default=_new_id, doc="Turnaround ID")

    # Provisioned fields
    flight_info = Column(JSON, nullable=False, doc="{flightNumber, origin, aircraftType}")
    gate = Column(String(10), nullable=False, index=True, doc="Gate designator")
    assigned_crew = Column(JSON, nullable=False, default=list, doc="Crew snapshots {uid, name, role}")

    # Aggregated fields
    status = Column(String(20), nullable=False, default=TurnaroundStatus.ON_TIME.value, index=True, doc="Turnaround status")
    progress = Column(Integer, nullable=False, default=0, doc="Completed task percentage")
    last_updated = Column(DateTime(timezone=True), nullable=True, doc="Last aggregate update")

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now(), doc="Record creation timestamp")

    __table_args__ = (
        CheckConstraint('progress >= 0 AND progress <= 100', name='ck_turnaround_progress_range'),
    )

    def __repr__(self):
        return f"<TurnaroundRecord(id={self.turnaround_id}, gate={self.gate}, status={self.status}, progress={self.progress})>"
