"""
Turnaround schemas.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from groundcrew.models.turnaround import TurnaroundRecord, TurnaroundStatus
from groundcrew.schemas.crew import CrewMember
from groundcrew.utils.clock import as_utc


class FlightInfo(BaseModel):
    """Immutable flight identification provisioned with the turnaround"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    flight_number: str = Field(..., alias="flightNumber", min_length=1)
    origin: str
    aircraft_type: str = Field(..., alias="aircraftType")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class Turnaround(BaseModel):
    """
    One aircraft ground-service event.
    Progress and status are owned by the progress aggregator; flight info,
    gate and crew by provisioning.
    """
    model_config = ConfigDict(populate_by_name=True)

    turnaround_id: str = Field(..., alias="id")
    flight_info: FlightInfo = Field(..., alias="flightInfo")
    gate: str
    status: TurnaroundStatus = TurnaroundStatus.ON_TIME
    progress: int = Field(0, ge=0, le=100)
    assigned_crew: List[CrewMember] = Field(default_factory=list, alias="assignedCrew")
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated")

    @field_validator("assigned_crew")
    @classmethod
    def _unique_by_uid(cls, crew: List[CrewMember]) -> List[CrewMember]:
        seen = set()
        unique = []
        for member in crew:
            if member.uid in seen:
                continue
            seen.add(member.uid)
            unique.append(member)
        return unique

    def to_document(self) -> dict:
        return {
            "flightInfo": self.flight_info.to_document(),
            "gate": self.gate,
            "status": self.status.value,
            "progress": self.progress,
            "assignedCrew": [member.to_document() for member in self.assigned_crew],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_record(cls, record: TurnaroundRecord) -> "Turnaround":
        return cls(
            turnaround_id=record.turnaround_id,
            flight_info=FlightInfo.model_validate(record.flight_info),
            gate=record.gate,
            status=record.status,
            progress=record.progress,
            assigned_crew=[CrewMember.from_document(m) for m in record.assigned_crew or []],
            last_updated=as_utc(record.last_updated),
        )
