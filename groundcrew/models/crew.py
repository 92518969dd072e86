from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
import enum
from groundcrew.database import Base


class CrewRole(str, enum.Enum):
    """Crew roles as stored on user and crew documents"""
    SUPERVISOR = "Supervisor"
    RAMP_AGENT = "Ramp Agent"
    MAINTENANCE_ENGINEER = "Maintenance Engineer"
    CATERING = "Catering"


class UserRecord(Base):
    """
    User profile document (users/{uid}).
    Credentials live with the external sign-in provider.
    """
    __tablename__ = "users"

    # Primary key, issued by the sign-in provider
    uid = Column(String(128), primary_key=True, doc="Sign-in provider user ID")

    employee_id = Column(String(32), nullable=False, unique=True, index=True, doc="Employee number")
    full_name = Column(String(100), nullable=False, doc="Display name")
    role = Column(String(32), nullable=False, index=True, doc="Crew role")
    assigned_turnarounds = Column(JSON, nullable=False, default=list, doc="Ordered turnaround IDs")

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now(), doc="Record creation timestamp")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), doc="Record update timestamp")

    def __repr__(self):
        return f"<UserRecord(uid={self.uid}, name={self.full_name}, role={self.role})>"
