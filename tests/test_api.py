"""HTTP surface of the sync service."""

from __future__ import annotations

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from jose import jwt

from groundcrew.database import Base, engine
from groundcrew.main import app
from groundcrew.services.business.turnaround_service import TurnaroundService

from conftest import ALICE, BA2490, BOB, CREW, DAVID, EVE, FRANK, checklist

pytestmark = pytest.mark.asyncio

PREFIX = "/api/v1"


def auth(member):
    token = jwt.encode({"sub": member.uid}, "test-secret", algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture()
async def client():
    async with LifespanManager(app):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client


@pytest_asyncio.fixture()
async def turnaround(client):
    service = TurnaroundService(app.state.store)
    for member in CREW:
        await service.register_user(member.uid, f"EMP-{member.uid.upper()}", member.name, member.role)
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
async def task_ids(client, turnaround):
    response = await client.get(f"{PREFIX}/turnarounds/{turnaround.turnaround_id}/tasks", headers=auth(ALICE))
    assert response.status_code == 200
    return [task["id"] for task in response.json()]


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_requests_need_a_known_user(client, turnaround):
    assert (await client.get(f"{PREFIX}/turnarounds")).status_code == 401

    stranger = jwt.encode({"sub": "nobody"}, "test-secret", algorithm="HS256")
    response = await client.get(f"{PREFIX}/turnarounds", headers={"Authorization": f"Bearer {stranger}"})
    assert response.status_code == 401


async def test_dashboard_lists_visible_turnarounds(client, turnaround):
    response = await client.get(f"{PREFIX}/turnarounds", headers=auth(BOB))
    assert response.status_code == 200
    [listed] = response.json()
    assert listed["id"] == turnaround.turnaround_id
    assert listed["flightInfo"]["flightNumber"] == "BA2490"
    assert listed["status"] == "On Time"

    response = await client.get(f"{PREFIX}/turnarounds", headers=auth(FRANK))
    assert response.json() == []


async def test_hidden_turnaround_is_not_found(client, turnaround):
    response = await client.get(f"{PREFIX}/turnarounds/{turnaround.turnaround_id}/tasks", headers=auth(FRANK))

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


async def test_complete_by_assignee(client, turnaround, task_ids):
    response = await client.post(
        f"{PREFIX}/turnarounds/{turnaround.turnaround_id}/tasks/{task_ids[0]}/complete",
        headers=auth(BOB),
    )

    assert response.status_code == 200
    task = response.json()
    assert task["status"] == "Completed"
    assert task["completedBy"] == {"uid": "bob", "name": "Bob Ramp", "role": None}
    assert task["completionTime"] is not None


async def test_complete_by_other_crew_is_forbidden(client, turnaround, task_ids):
    response = await client.post(
        f"{PREFIX}/turnarounds/{turnaround.turnaround_id}/tasks/{task_ids[0]}/complete",
        headers=auth(FRANK),
    )

    assert response.status_code == 403
    assert response.json() == {
        "error": "NOT_AUTHORIZED",
        "detail": "This task is not assigned to you. Contact your supervisor.",
    }


@pytest.mark.parametrize("body,detail", [
    ({"reason": "", "estimated_delay_minutes": 30}, "Please provide a reason for the delay."),
    ({"reason": "Late cart", "estimated_delay_minutes": "abc"},
     "Please provide a valid estimated delay time in minutes."),
    ({"reason": "Late cart"}, "Please provide a valid estimated delay time in minutes."),
])
async def test_incomplete_delay_report(client, turnaround, task_ids, body, detail):
    url = f"{PREFIX}/turnarounds/{turnaround.turnaround_id}/tasks/{task_ids[1]}/delay"

    response = await client.post(url, json=body, headers=auth(BOB))

    assert response.status_code == 422
    assert response.json() == {"error": "INVALID_INPUT", "detail": detail}


async def test_delay_report_flags_turnaround(client, turnaround, task_ids):
    base = f"{PREFIX}/turnarounds/{turnaround.turnaround_id}"

    response = await client.post(
        f"{base}/tasks/{task_ids[1]}/delay",
        json={"reason": "Late arrival of baggage cart.", "estimated_delay_minutes": "30"},
        headers=auth(BOB),
    )
    assert response.status_code == 200
    task = response.json()
    assert task["status"] == "Delayed"
    assert task["isDelayed"] is True
    assert task["delayReport"]["estimatedDelayMinutes"] == 30
    assert task["delayReport"]["reportedBy"]["role"] == "Ramp Agent"

    response = await client.get(base, headers=auth(BOB))
    assert response.json()["status"] == "Delayed"

    response = await client.post(f"{base}/tasks/{task_ids[1]}/uncomplete", headers=auth(BOB))
    assert response.status_code == 409
    assert response.json()["error"] == "INVALID_TRANSITION"

    response = await client.post(f"{base}/tasks/{task_ids[1]}/clear-delay", headers=auth(BOB))
    assert response.status_code == 200
    assert response.json()["status"] == "Pending"
    assert (await client.get(base, headers=auth(BOB))).json()["status"] == "Delayed"


async def test_supervisor_status_override(client, turnaround):
    url = f"{PREFIX}/turnarounds/{turnaround.turnaround_id}/status"

    response = await client.patch(url, json={"status": "Completed"}, headers=auth(BOB))
    assert response.status_code == 403

    response = await client.patch(url, json={"status": "Completed"}, headers=auth(ALICE))
    assert response.status_code == 200
    assert response.json()["status"] == "Completed"

    response = await client.patch(url, json={"status": "Boarding"}, headers=auth(ALICE))
    assert response.status_code == 422


async def test_unknown_task_is_not_found(client, turnaround):
    response = await client.post(
        f"{PREFIX}/turnarounds/{turnaround.turnaround_id}/tasks/missing/complete",
        headers=auth(ALICE),
    )

    assert response.status_code == 404


async def test_aggregation_sweep_requires_supervisor(client, turnaround):
    response = await client.post(f"{PREFIX}/aggregation/sweep", headers=auth(BOB))
    assert response.status_code == 403

    # Aggregation is switched off for the test run
    response = await client.post(f"{PREFIX}/aggregation/sweep", headers=auth(ALICE))
    assert response.status_code == 503
