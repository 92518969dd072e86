"""Shared fixtures: a throwaway SQLite document store and the sample crew."""

from __future__ import annotations

import os
import tempfile

# Settings, engine and auth are built at import time
_TEST_DIR = tempfile.mkdtemp(prefix="groundcrew-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/app.sqlite"
os.environ["ENABLE_AGGREGATOR"] = "false"
os.environ["ENABLE_CHANGE_RELAY"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from groundcrew.database import Base
from groundcrew.models import crew as crew_models, task as task_models, turnaround as turnaround_models  # noqa: F401
from groundcrew.models.crew import CrewRole
from groundcrew.schemas.crew import CrewMember
from groundcrew.schemas.turnaround import FlightInfo
from groundcrew.services.business.task_state_machine import TaskStateMachine
from groundcrew.services.business.turnaround_service import TurnaroundService
from groundcrew.services.realtime.subscription_channel import SubscriptionChannel
from groundcrew.services.store.document_store import DocumentStore

ALICE = CrewMember(uid="alice", name="Alice Supervisor", role=CrewRole.SUPERVISOR)
BOB = CrewMember(uid="bob", name="Bob Ramp", role=CrewRole.RAMP_AGENT)
CHARLIE = CrewMember(uid="charlie", name="Charlie Ramp", role=CrewRole.RAMP_AGENT)
DAVID = CrewMember(uid="david", name="David Maintenance", role=CrewRole.MAINTENANCE_ENGINEER)
FRANK = CrewMember(uid="frank", name="Frank Maintenance", role=CrewRole.MAINTENANCE_ENGINEER)
EVE = CrewMember(uid="eve", name="Eve Catering", role=CrewRole.CATERING)

CREW = [ALICE, BOB, CHARLIE, DAVID, FRANK, EVE]

BA2490 = FlightInfo(flight_number="BA2490", origin="LHR", aircraft_type="787-9")


def checklist(*items):
    """(name, assignee) pairs to provisioning dicts, sequenced from 1"""
    return [
        {"name": name, "assigned_role": member.role, "assigned_to": member, "sequence": sequence}
        for sequence, (name, member) in enumerate(items, start=1)
    ]


@pytest_asyncio.fixture()
async def store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.sqlite'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield DocumentStore(async_sessionmaker(engine, expire_on_commit=False))

    await engine.dispose()


@pytest_asyncio.fixture()
async def service(store):
    service = TurnaroundService(store, match_mode="uid")
    for member in CREW:
        await service.register_user(
            member.uid, f"EMP-{member.uid.upper()}", member.name, member.role
        )
    return service


@pytest.fixture()
def machine(store):
    return TaskStateMachine(store)


@pytest_asyncio.fixture()
async def channel(store):
    channel = SubscriptionChannel(store, queue_size=16)
    yield channel
    await channel.close()


@pytest_asyncio.fixture()
async def turnaround(service):
    """BA2490 at B34 with four Pending tasks"""
    return await service.provision_turnaround(
        BA2490,
        "B34",
        [ALICE, BOB, DAVID, EVE],
        checklist(
            ("Position Chocks", BOB),
            ("Connect Ground Power", BOB),
            ("Perform Walkaround Inspection", DAVID),
            ("Catering Service Dock", EVE),
        ),
    )


@pytest_asyncio.fixture()
async def tasks(store, turnaround):
    return await store.list_tasks(turnaround.turnaround_id)
