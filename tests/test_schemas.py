"""Entity model invariants."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as SchemaValidationError

from groundcrew.exceptions import ValidationError
from groundcrew.models.crew import CrewRole
from groundcrew.models.task import TaskStatus
from groundcrew.schemas.crew import CrewMember, UserProfile
from groundcrew.schemas.task import Task
from groundcrew.schemas.turnaround import Turnaround

from conftest import BA2490, BOB, CHARLIE

NOW = datetime(2025, 9, 15, 14, 30, tzinfo=timezone.utc)


def pending_document(**overrides):
    document = {
        "name": "Position Chocks",
        "assignedRole": "Ramp Agent",
        "assignedTo": {"uid": "bob", "name": "Bob Ramp"},
        "status": "Pending",
        "isDelayed": False,
        "sequence": 1,
        "completedBy": None,
        "completionTime": None,
        "delayReason": None,
        "delayTimestamp": None,
        "estimatedDelayMinutes": None,
        "reportedBy": None,
    }
    document.update(overrides)
    return document


def test_pending_task_from_document():
    task = Task.from_document("t1", "ta1", pending_document())

    assert task.status == TaskStatus.PENDING
    assert task.assigned_to == CrewMember(uid="bob", name="Bob Ramp")
    assert task.assigned_role == CrewRole.RAMP_AGENT
    assert task.delay_report is None


def test_delayed_task_builds_delay_report():
    task = Task.from_document("t1", "ta1", pending_document(
        status="Delayed",
        isDelayed=True,
        delayReason="Late arrival of baggage cart.",
        delayTimestamp=NOW.replace(tzinfo=None),
        estimatedDelayMinutes=30,
        reportedBy={"uid": "bob", "name": "Bob Ramp", "role": "Ramp Agent"},
    ))

    assert task.is_delayed
    assert task.delay_report.estimated_delay_minutes == 30
    assert task.delay_report.reported_by.role == CrewRole.RAMP_AGENT
    # Naive stored timestamps are read as UTC
    assert task.delay_report.delay_timestamp == NOW


@pytest.mark.parametrize("overrides", [
    {"status": "Completed"},
    {"completedBy": {"uid": "bob", "name": "Bob Ramp"}, "completionTime": NOW},
    {"isDelayed": True},
    {"status": "Delayed", "isDelayed": True},
    {"status": "Delayed", "isDelayed": False, "delayReason": "x", "delayTimestamp": NOW,
     "estimatedDelayMinutes": 5, "reportedBy": {"uid": "bob", "name": "Bob Ramp"}},
    {"status": "Delayed", "isDelayed": True, "delayReason": "x", "delayTimestamp": NOW,
     "estimatedDelayMinutes": 0, "reportedBy": {"uid": "bob", "name": "Bob Ramp"}},
])
def test_inconsistent_task_documents_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Task.from_document("t1", "ta1", pending_document(**overrides))


def test_task_document_shape_is_flat():
    task = Task.from_document("t1", "ta1", pending_document(
        status="Completed",
        completedBy={"uid": "bob", "name": "Bob Ramp"},
        completionTime=NOW,
    ))
    document = task.to_document()

    assert document["completedBy"] == {"uid": "bob", "name": "Bob Ramp"}
    assert document["completionTime"] == NOW
    assert document["delayReason"] is None
    assert document["reportedBy"] is None
    assert "delayReport" not in document


def test_task_serializes_with_wire_names():
    task = Task.from_document("t1", "ta1", pending_document())
    data = task.model_dump(mode="json", by_alias=True)

    assert data["id"] == "t1"
    assert data["turnaroundId"] == "ta1"
    assert data["assignedRole"] == "Ramp Agent"
    assert data["isDelayed"] is False


def test_sequence_must_be_positive():
    with pytest.raises(ValidationError):
        Task.from_document("t1", "ta1", pending_document(sequence=0))


def test_turnaround_crew_is_unique_by_uid():
    renamed_bob = CrewMember(uid="bob", name="Robert Ramp", role=CrewRole.RAMP_AGENT)
    turnaround = Turnaround(
        turnaround_id="ta1",
        flight_info=BA2490,
        gate="B34",
        assigned_crew=[BOB, CHARLIE, renamed_bob],
    )

    assert [member.uid for member in turnaround.assigned_crew] == ["bob", "charlie"]
    assert turnaround.assigned_crew[0].name == "Bob Ramp"


def test_turnaround_progress_bounds():
    with pytest.raises(SchemaValidationError):
        Turnaround(turnaround_id="ta1", flight_info=BA2490, gate="B34", progress=101)


def test_user_profile_accepts_document_names():
    profile = UserProfile.model_validate({
        "uid": "alice",
        "employeeId": "SUP001",
        "fullName": "Alice Supervisor",
        "role": "Supervisor",
    })

    assert profile.assigned_turnarounds == []
    assert profile.as_crew_member().is_supervisor
    assert profile.to_document()["employeeId"] == "SUP001"


def test_crew_member_documents():
    assert BOB.to_document() == {"uid": "bob", "name": "Bob Ramp", "role": "Ramp Agent"}
    assert BOB.identity() == {"uid": "bob", "name": "Bob Ramp"}
    assert CrewMember.from_document(None) is None
