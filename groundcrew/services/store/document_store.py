"""
Document store adapter.
Exposes the users/turnarounds/tasks documents through SQLAlchemy asyncio
sessions and notifies listeners after every committed write.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from groundcrew.exceptions import ConnectivityError, NotFoundError
from groundcrew.repositories.task_repository import TaskRepository
from groundcrew.repositories.turnaround_repository import TurnaroundRepository
from groundcrew.repositories.user_repository import UserRepository
from groundcrew.schemas.crew import UserProfile
from groundcrew.schemas.task import Task
from groundcrew.schemas.turnaround import Turnaround

logger = logging.getLogger(__name__)

USERS = "users"
TURNAROUNDS = "turnarounds"
TASKS = "tasks"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed write to one document"""
    collection: str
    document_id: str
    turnaround_id: Optional[str] = None
    origin: Optional[str] = None


ChangeListener = Callable[[ChangeEvent], None]


class DocumentStore:
    """
    Merge-style document store with change notifications.
    Writes are partial field overwrites applied in one statement; there is
    no version check, the last write wins.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory
        self._listeners: List[ChangeListener] = []

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, event: ChangeEvent) -> None:
        """Deliver a change event to every listener"""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    f"Change listener failed: {str(e)}",
                    extra={"collection": event.collection, "document_id": event.document_id},
                    exc_info=True
                )

    @asynccontextmanager
    async def _session(self, operation: str):
        try:
            async with self._session_factory() as session:
                yield session
        except (OperationalError, InterfaceError, DisconnectionError, OSError) as e:
            logger.warning(f"Store unreachable during {operation}: {str(e)}")
            raise ConnectivityError(f"Store unreachable during {operation}") from e
        except DBAPIError as e:
            if e.connection_invalidated:
                logger.warning(f"Store connection lost during {operation}: {str(e)}")
                raise ConnectivityError(f"Store connection lost during {operation}") from e
            raise

    # Users

    async def get_user(self, uid: str) -> UserProfile:
        async with self._session("get_user") as db:
            record = await UserRepository(db).get_by_uid(uid)
        if record is None:
            raise NotFoundError(f"User {uid} not found")
        return UserProfile.from_record(record)

    async def create_user(self, profile: UserProfile) -> UserProfile:
        async with self._session("create_user") as db:
            record = await UserRepository(db).create(
                uid=profile.uid,
                employee_id=profile.employee_id,
                full_name=profile.full_name,
                role=profile.role.value,
                assigned_turnarounds=profile.assigned_turnarounds
            )
            created = UserProfile.from_record(record)
        self.publish(ChangeEvent(USERS, created.uid))
        return created

    async def append_user_turnaround(self, uid: str, turnaround_id: str) -> Optional[UserProfile]:
        """Record an assignment on users/{uid}; unknown users are skipped"""
        async with self._session("append_user_turnaround") as db:
            record = await UserRepository(db).append_turnaround(uid, turnaround_id)
            if record is None:
                return None
            profile = UserProfile.from_record(record)
        self.publish(ChangeEvent(USERS, uid))
        return profile

    # Turnarounds

    async def get_turnaround(self, turnaround_id: str) -> Turnaround:
        async with self._session("get_turnaround") as db:
            record = await TurnaroundRepository(db).get_by_id(turnaround_id)
        if record is None:
            raise NotFoundError(f"Turnaround {turnaround_id} not found")
        return Turnaround.from_record(record)

    async def list_turnarounds(self) -> List[Turnaround]:
        async with self._session("list_turnarounds") as db:
            records = await TurnaroundRepository(db).list_all()
        return [Turnaround.from_record(record) for record in records]

    async def create_turnaround(self, turnaround: Turnaround, tasks: List[Task]) -> Turnaround:
        """Insert a turnaround and its checklist"""
        async with self._session("create_turnaround") as db:
            record = await TurnaroundRepository(db).create(
                turnaround.to_document(), turnaround_id=turnaround.turnaround_id or None
            )
            turnaround_id = record.turnaround_id
            created = Turnaround.from_record(record)
            task_records = await TaskRepository(db).create_many(
                turnaround_id, [task.to_document() for task in tasks]
            )
            task_ids = [task_record.task_id for task_record in task_records]

        self.publish(ChangeEvent(TURNAROUNDS, turnaround_id, turnaround_id))
        for task_id in task_ids:
            self.publish(ChangeEvent(TASKS, task_id, turnaround_id))
        return created

    async def merge_turnaround(
        self,
        turnaround_id: str,
        fields: dict,
        expected: Optional[dict] = None
    ) -> bool:
        """
        Merge fields into turnarounds/{id}.

        Args:
            turnaround_id: Turnaround to update
            fields: Document fields to overwrite
            expected: Compare-and-set guard; the write applies only while the
                document still holds these values

        Returns:
            Whether the write applied
        """
        async with self._session("merge_turnaround") as db:
            applied = await TurnaroundRepository(db).merge(turnaround_id, fields, expected=expected)
            if not applied and expected is None:
                raise NotFoundError(f"Turnaround {turnaround_id} not found")
        if applied:
            self.publish(ChangeEvent(TURNAROUNDS, turnaround_id, turnaround_id))
        return applied

    # Tasks

    async def get_task(self, turnaround_id: str, task_id: str) -> Task:
        async with self._session("get_task") as db:
            record = await TaskRepository(db).get_by_id(turnaround_id, task_id)
        if record is None:
            raise NotFoundError(f"Task {task_id} not found in turnaround {turnaround_id}")
        return Task.from_record(record)

    async def list_tasks(self, turnaround_id: str) -> List[Task]:
        async with self._session("list_tasks") as db:
            records = await TaskRepository(db).list_by_turnaround(turnaround_id)
        return [Task.from_record(record) for record in records]

    async def merge_task(self, turnaround_id: str, task_id: str, fields: dict) -> None:
        async with self._session("merge_task") as db:
            applied = await TaskRepository(db).merge(turnaround_id, task_id, fields)
        if not applied:
            raise NotFoundError(f"Task {task_id} not found in turnaround {turnaround_id}")
        self.publish(ChangeEvent(TASKS, task_id, turnaround_id))
