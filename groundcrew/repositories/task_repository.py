from typing import Optional, List
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from groundcrew.models.task import TaskRecord

# Document field -> column
TASK_FIELD_COLUMNS = {
    "name": "name",
    "assignedRole": "assigned_role",
    "assignedTo": "assigned_to",
    "status": "status",
    "isDelayed": "is_delayed",
    "sequence": "sequence",
    "completedBy": "completed_by",
    "completionTime": "completion_time",
    "delayReason": "delay_reason",
    "delayTimestamp": "delay_timestamp",
    "estimatedDelayMinutes": "estimated_delay_minutes",
    "reportedBy": "reported_by",
}


def _columns(fields: dict) -> dict:
    unknown = set(fields) - set(TASK_FIELD_COLUMNS)
    if unknown:
        raise KeyError(f"Unknown task fields: {sorted(unknown)}")
    return {TASK_FIELD_COLUMNS[name]: value for name, value in fields.items()}


class TaskRepository:
    """Repository for turnarounds/{id}/tasks/{taskId} documents"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_many(self, turnaround_id: str, documents: List[dict]) -> List[TaskRecord]:
        """Create the checklist of a turnaround"""
        tasks = [
            TaskRecord(turnaround_id=turnaround_id, **_columns(document))
            for document in documents
        ]
        self.db.add_all(tasks)
        await self.db.commit()
        for task in tasks:
            await self.db.refresh(task)
        return tasks

    async def get_by_id(self, turnaround_id: str, task_id: str) -> Optional[TaskRecord]:
        """Get task by ID within its turnaround"""
        result = await self.db.execute(
            select(TaskRecord).where(
                TaskRecord.turnaround_id == turnaround_id,
                TaskRecord.task_id == task_id
            )
        )
        return result.scalar_one_or_none()

    async def list_by_turnaround(self, turnaround_id: str) -> List[TaskRecord]:
        """Get all tasks of a turnaround ordered by sequence"""
        result = await self.db.execute(
            select(TaskRecord)
            .where(TaskRecord.turnaround_id == turnaround_id)
            .order_by(TaskRecord.sequence)
        )
        return list(result.scalars().all())

    async def merge(self, turnaround_id: str, task_id: str, fields: dict) -> bool:
        """Overwrite the given fields in one statement (last write wins)"""
        result = await self.db.execute(
            update(TaskRecord)
            .where(
                TaskRecord.turnaround_id == turnaround_id,
                TaskRecord.task_id == task_id
            )
            .values(**_columns(fields))
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount > 0
