"""
Crew identity schemas.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from groundcrew.models.crew import CrewRole, UserRecord


class CrewMember(BaseModel):
    """
    Denormalized crew identity snapshot.
    Copied by value into turnaround and task documents; later profile
    changes never rewrite historical snapshots.
    """
    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1)
    name: str
    role: Optional[CrewRole] = None

    @property
    def is_supervisor(self) -> bool:
        return self.role == CrewRole.SUPERVISOR

    def to_document(self) -> dict:
        data = {"uid": self.uid, "name": self.name}
        if self.role is not None:
            data["role"] = self.role.value
        return data

    def identity(self) -> dict:
        """{uid, name} form stored on assignedTo and completedBy"""
        return {"uid": self.uid, "name": self.name}

    @classmethod
    def from_document(cls, data: Optional[dict]) -> Optional["CrewMember"]:
        if data is None:
            return None
        return cls(uid=data["uid"], name=data.get("name", ""), role=data.get("role"))


class UserProfile(BaseModel):
    """User profile document (users/{uid})"""
    model_config = ConfigDict(populate_by_name=True)

    uid: str
    employee_id: str = Field(..., alias="employeeId")
    full_name: str = Field(..., alias="fullName")
    role: CrewRole
    assigned_turnarounds: List[str] = Field(default_factory=list, alias="assignedTurnarounds")

    def as_crew_member(self) -> CrewMember:
        """Snapshot of this user as embedded in turnaround/task documents"""
        return CrewMember(uid=self.uid, name=self.full_name, role=self.role)

    def to_document(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "fullName": self.full_name,
            "role": self.role.value,
            "assignedTurnarounds": list(self.assigned_turnarounds),
        }

    @classmethod
    def from_record(cls, record: UserRecord) -> "UserProfile":
        return cls(
            uid=record.uid,
            employee_id=record.employee_id,
            full_name=record.full_name,
            role=record.role,
            assigned_turnarounds=list(record.assigned_turnarounds or []),
        )
