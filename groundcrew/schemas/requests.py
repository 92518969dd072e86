"""
Request bodies for crew actions.
Delay input is validated by the state machine so the crew member gets the
same corrective message on every surface.
"""
from typing import Optional, Union
from pydantic import BaseModel, Field

from groundcrew.models.turnaround import TurnaroundStatus


class DelayReportRequest(BaseModel):
    """Delay report submitted from the checklist"""
    reason: Optional[str] = Field(None, description="Reason for the delay")
    estimated_delay_minutes: Union[int, str, None] = Field(
        None, description="Estimated delay in minutes"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "reason": "Late arrival of baggage cart.",
                "estimated_delay_minutes": 30
            }
        }


class TurnaroundStatusUpdate(BaseModel):
    """Explicit supervisor status override"""
    status: TurnaroundStatus
