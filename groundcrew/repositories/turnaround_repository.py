from typing import Optional, List
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from groundcrew.models.turnaround import TurnaroundRecord

# Document field -> column
TURNAROUND_FIELD_COLUMNS = {
    "flightInfo": "flight_info",
    "gate": "gate",
    "status": "status",
    "progress": "progress",
    "assignedCrew": "assigned_crew",
    "lastUpdated": "last_updated",
}


def _columns(fields: dict) -> dict:
    unknown = set(fields) - set(TURNAROUND_FIELD_COLUMNS)
    if unknown:
        raise KeyError(f"Unknown turnaround fields: {sorted(unknown)}")
    return {TURNAROUND_FIELD_COLUMNS[name]: value for name, value in fields.items()}


class TurnaroundRepository:
    """Repository for turnarounds/{id} documents"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, document: dict, turnaround_id: Optional[str] = None) -> TurnaroundRecord:
        """Create new turnaround from its document fields"""
        turnaround = TurnaroundRecord(**_columns(document))
        if turnaround_id:
            turnaround.turnaround_id = turnaround_id
        self.db.add(turnaround)
        await self.db.commit()
        await self.db.refresh(turnaround)
        return turnaround

    async def get_by_id(self, turnaround_id: str) -> Optional[TurnaroundRecord]:
        """Get turnaround by ID"""
        result = await self.db.execute(
            select(TurnaroundRecord).where(TurnaroundRecord.turnaround_id == turnaround_id)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> List[TurnaroundRecord]:
        """List all turnarounds in provisioning order"""
        result = await self.db.execute(
            select(TurnaroundRecord).order_by(
                TurnaroundRecord.created_at, TurnaroundRecord.turnaround_id
            )
        )
        return list(result.scalars().all())

    async def merge(
        self,
        turnaround_id: str,
        fields: dict,
        expected: Optional[dict] = None
    ) -> bool:
        """
        Overwrite the given fields in one statement.

        Args:
            turnaround_id: Turnaround to update
            fields: Document fields to write
            expected: Optional current values the row must still hold

        Returns:
            True if a row was updated
        """
        stmt = update(TurnaroundRecord).where(TurnaroundRecord.turnaround_id == turnaround_id)
        for column, value in _columns(expected or {}).items():
            stmt = stmt.where(getattr(TurnaroundRecord, column) == value)

        result = await self.db.execute(
            stmt.values(**_columns(fields)).execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount > 0
