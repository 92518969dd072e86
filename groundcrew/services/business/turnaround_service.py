"""
Turnaround Service.
Read access filtered by visibility, the explicit supervisor status update,
and provisioning of crew and checklists.
"""
import logging
from typing import List, Optional, Sequence

from groundcrew.exceptions import NotFoundError, ValidationError
from groundcrew.models.crew import CrewRole
from groundcrew.models.task import TaskStatus
from groundcrew.models.turnaround import TurnaroundStatus
from groundcrew.schemas.crew import CrewMember, UserProfile
from groundcrew.schemas.task import Task
from groundcrew.schemas.turnaround import FlightInfo, Turnaround
from groundcrew.services.business.authorization import ensure_supervisor
from groundcrew.services.business.visibility import is_visible, visible_turnarounds
from groundcrew.services.store.document_store import DocumentStore
from groundcrew.utils.clock import utc_now

logger = logging.getLogger(__name__)


class TurnaroundService:
    """
    Service for turnaround reads, status overrides and provisioning.
    """

    def __init__(self, store: DocumentStore, match_mode: Optional[str] = None):
        self.store = store
        self.match_mode = match_mode

    async def visible_turnarounds(self, actor: CrewMember) -> List[Turnaround]:
        return visible_turnarounds(actor, await self.store.list_turnarounds(), self.match_mode)

    async def get_turnaround(self, actor: CrewMember, turnaround_id: str) -> Turnaround:
        """Turnaround by ID; hidden turnarounds are reported as missing"""
        turnaround = await self.store.get_turnaround(turnaround_id)
        if not is_visible(actor, turnaround, self.match_mode):
            raise NotFoundError(f"Turnaround {turnaround_id} not visible to {actor.uid}")
        return turnaround

    async def list_tasks(self, actor: CrewMember, turnaround_id: str) -> List[Task]:
        await self.get_turnaround(actor, turnaround_id)
        return await self.store.list_tasks(turnaround_id)

    async def update_status(
        self,
        actor: CrewMember,
        turnaround_id: str,
        status: TurnaroundStatus
    ) -> Turnaround:
        """
        Explicit status write; the only way a Delayed turnaround is cleared.

        Raises:
            AuthorizationError: actor is not a supervisor
            NotFoundError: turnaround missing
        """
        ensure_supervisor(actor, "update turnaround status")
        previous = await self.store.get_turnaround(turnaround_id)

        last_updated = utc_now()
        await self.store.merge_turnaround(
            turnaround_id,
            {"status": status.value, "lastUpdated": last_updated}
        )
        logger.info(
            f"Turnaround {turnaround_id} status set to {status.value}",
            extra={
                "turnaround_id": turnaround_id,
                "previous_status": previous.status.value,
                "actor_uid": actor.uid,
            }
        )
        return previous.model_copy(update={"status": status, "last_updated": last_updated})

    async def register_user(
        self,
        uid: str,
        employee_id: str,
        full_name: str,
        role: CrewRole
    ) -> UserProfile:
        """Create a users/{uid} profile"""
        profile = UserProfile(uid=uid, employee_id=employee_id, full_name=full_name, role=role)
        return await self.store.create_user(profile)

    async def provision_turnaround(
        self,
        flight_info: FlightInfo,
        gate: str,
        crew: Sequence[CrewMember],
        tasks: Sequence[dict],
        status: TurnaroundStatus = TurnaroundStatus.ON_TIME
    ) -> Turnaround:
        """
        Create a turnaround with a Pending checklist.

        Args:
            flight_info: Flight identification
            gate: Gate designator
            crew: Crew snapshots allowed to observe the turnaround
            tasks: Items with name, assigned_role, assigned_to (CrewMember)
                and sequence
            status: Initial turnaround status

        Raises:
            ValidationError: sequences are not unique positive integers
        """
        sequences = [item["sequence"] for item in tasks]
        if len(set(sequences)) != len(sequences) or any(s <= 0 for s in sequences):
            raise ValidationError(f"Task sequences must be unique positive integers: {sequences}")

        turnaround = Turnaround(
            turnaround_id="",
            flight_info=flight_info,
            gate=gate,
            status=status,
            progress=0,
            assigned_crew=list(crew),
            last_updated=utc_now(),
        )
        checklist = [
            Task(
                task_id="",
                turnaround_id="",
                name=item["name"],
                assigned_role=item["assigned_role"],
                assigned_to=item["assigned_to"],
                sequence=item["sequence"],
                status=TaskStatus.PENDING,
            )
            for item in tasks
        ]

        created = await self.store.create_turnaround(turnaround, checklist)
        for member in created.assigned_crew:
            await self.store.append_user_turnaround(member.uid, created.turnaround_id)

        logger.info(
            f"Provisioned turnaround for {flight_info.flight_number} at gate {gate}",
            extra={"turnaround_id": created.turnaround_id, "tasks": len(checklist)}
        )
        return created
