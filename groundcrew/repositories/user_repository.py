from typing import Optional, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from groundcrew.models.crew import UserRecord


class UserRepository:
    """Repository for users/{uid} documents"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        uid: str,
        employee_id: str,
        full_name: str,
        role: str,
        assigned_turnarounds: Optional[List[str]] = None
    ) -> UserRecord:
        """Create new user profile"""
        user = UserRecord(
            uid=uid,
            employee_id=employee_id,
            full_name=full_name,
            role=role,
            assigned_turnarounds=list(assigned_turnarounds or [])
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def get_by_uid(self, uid: str) -> Optional[UserRecord]:
        """Get user by uid"""
        result = await self.db.execute(
            select(UserRecord).where(UserRecord.uid == uid)
        )
        return result.scalar_one_or_none()

    async def append_turnaround(self, uid: str, turnaround_id: str) -> Optional[UserRecord]:
        """Append a turnaround ID to the user's ordered assignment list"""
        user = await self.get_by_uid(uid)
        if not user:
            return None

        assigned = list(user.assigned_turnarounds or [])
        if turnaround_id not in assigned:
            # JSON columns only persist on reassignment
            user.assigned_turnarounds = assigned + [turnaround_id]
            await self.db.commit()
            await self.db.refresh(user)
        return user
