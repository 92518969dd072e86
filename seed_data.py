"""
Seed database with sample crew and turnarounds.
Turnarounds are added on every run; drop the tables for a clean start.
"""
import asyncio

from groundcrew.database import AsyncSessionLocal, close_db, init_db
from groundcrew.exceptions import NotFoundError
from groundcrew.models.crew import CrewRole
from groundcrew.schemas.crew import CrewMember
from groundcrew.schemas.turnaround import FlightInfo
from groundcrew.services.business.task_state_machine import TaskStateMachine
from groundcrew.services.business.turnaround_service import TurnaroundService
from groundcrew.services.orchestration.progress_aggregator import ProgressAggregator
from groundcrew.services.realtime.subscription_channel import SubscriptionChannel
from groundcrew.services.store.document_store import DocumentStore

USERS = {
    "oyNXZXbe58drPs01sjs89FreQ893": ("SUP001", "Alice Supervisor", CrewRole.SUPERVISOR),
    "QB2HAwd0e1PsuLiVLdcn8V81eKs2": ("RAMP001", "Bob Ramp", CrewRole.RAMP_AGENT),
    "lRX1iSQrlkfRkaigCrHQxUqQ6w62": ("RAMP002", "Charlie Ramp", CrewRole.RAMP_AGENT),
    "yqOVbQwuTIerNx8TQRkY2G5M2mZ2": ("MAINT001", "David Maintenance", CrewRole.MAINTENANCE_ENGINEER),
    "Ft4i8A63rYWnFLoWUteKPBls7WD2": ("MAINT002", "Frank Maintenance", CrewRole.MAINTENANCE_ENGINEER),
    "ZiUWfH3UqpbwxNyVMKVOvxakQmz2": ("CAT001", "Eve Catering", CrewRole.CATERING),
}

ALICE = "oyNXZXbe58drPs01sjs89FreQ893"
BOB = "QB2HAwd0e1PsuLiVLdcn8V81eKs2"
CHARLIE = "lRX1iSQrlkfRkaigCrHQxUqQ6w62"
DAVID = "yqOVbQwuTIerNx8TQRkY2G5M2mZ2"
FRANK = "Ft4i8A63rYWnFLoWUteKPBls7WD2"
EVE = "ZiUWfH3UqpbwxNyVMKVOvxakQmz2"

# (flight, gate, crew uids, [(task name, assignee uid, seeded status)], delay)
TURNAROUNDS = [
    (
        FlightInfo(flight_number="BA2490", origin="LHR", aircraft_type="787-9"),
        "B34",
        [ALICE, BOB, DAVID, EVE],
        [
            ("Position Chocks", BOB, "Completed"),
            ("Connect Ground Power", BOB, "Pending"),
            ("Perform Walkaround Inspection", DAVID, "Pending"),
            ("Catering Service Dock", EVE, "Pending"),
        ],
    ),
    (
        FlightInfo(flight_number="LH400", origin="FRA", aircraft_type="747-8"),
        "A7",
        [ALICE, CHARLIE, DAVID],
        [
            ("Position Chocks", CHARLIE, "Completed"),
            ("Connect Ground Power", CHARLIE, "Completed"),
            ("Begin Baggage Unload", CHARLIE, "Delayed"),
            ("Engine Oil Check", DAVID, "Pending"),
        ],
    ),
    (
        FlightInfo(flight_number="UA88", origin="EWR", aircraft_type="777-300ER"),
        "C12",
        [ALICE, BOB, FRANK, EVE],
        [
            ("Position Chocks", BOB, "Pending"),
            ("Connect Ground Power", BOB, "Pending"),
            ("Fuel Check", FRANK, "Pending"),
            ("Load Catering Supplies", EVE, "Pending"),
        ],
    ),
]


async def seed_database():
    """Seed database with test data"""
    await init_db()
    store = DocumentStore(AsyncSessionLocal)
    service = TurnaroundService(store)
    machine = TaskStateMachine(store)
    aggregator = ProgressAggregator(store, SubscriptionChannel(store))

    print("🌱 Seeding database...")

    print("\n👷 Creating crew profiles...")
    crew = {}
    for uid, (employee_id, full_name, role) in USERS.items():
        try:
            profile = await store.get_user(uid)
            print(f"  - {full_name} already exists")
        except NotFoundError:
            profile = await service.register_user(uid, employee_id, full_name, role)
            print(f"  ✓ {full_name} ({role.value})")
        crew[uid] = profile.as_crew_member()

    print("\n✈️  Creating turnarounds...")
    for flight_info, gate, crew_uids, checklist in TURNAROUNDS:
        turnaround = await service.provision_turnaround(
            flight_info,
            gate,
            [crew[uid] for uid in crew_uids],
            [
                {
                    "name": name,
                    "assigned_role": crew[uid].role,
                    "assigned_to": crew[uid],
                    "sequence": sequence,
                }
                for sequence, (name, uid, _) in enumerate(checklist, start=1)
            ],
        )

        # Replay the seeded progress as the assignees would
        tasks = await store.list_tasks(turnaround.turnaround_id)
        for task, (_, uid, seeded_status) in zip(tasks, checklist):
            if seeded_status == "Completed":
                await machine.complete(crew[uid], turnaround.turnaround_id, task.task_id)
            elif seeded_status == "Delayed":
                await machine.report_delay(
                    crew[uid],
                    turnaround.turnaround_id,
                    task.task_id,
                    reason="Late arrival of baggage cart.",
                    estimated_minutes=30,
                )

        await aggregator.recompute(turnaround.turnaround_id)
        seeded = await store.get_turnaround(turnaround.turnaround_id)
        print(
            f"  ✓ {flight_info.flight_number} at gate {gate}: "
            f"{seeded.status.value}, {seeded.progress}% ({seeded.turnaround_id})"
        )

    await close_db()
    print("\n✅ Database seeded successfully!")


if __name__ == "__main__":
    asyncio.run(seed_database())
