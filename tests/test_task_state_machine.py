"""Task lifecycle transitions against a SQLite-backed store."""

from __future__ import annotations

import pytest

from groundcrew.exceptions import AuthorizationError, InvalidTransitionError, NotFoundError, ValidationError
from groundcrew.models.task import TaskStatus
from groundcrew.models.turnaround import TurnaroundStatus
from groundcrew.schemas.crew import CrewMember
from groundcrew.services.business.task_state_machine import parse_estimated_minutes, validate_delay_reason

from conftest import ALICE, BOB, DAVID, FRANK


def assert_lifecycle_consistent(task):
    if task.status == TaskStatus.COMPLETED:
        assert task.completed_by is not None and task.completion_time is not None
    else:
        assert task.completed_by is None and task.completion_time is None
    assert (task.delay_report is not None) == (task.status == TaskStatus.DELAYED)
    assert task.is_delayed == (task.status == TaskStatus.DELAYED)


async def test_assignee_completes_task(store, machine, turnaround, tasks):
    chocks = tasks[0]

    result = await machine.complete(BOB, turnaround.turnaround_id, chocks.task_id)

    stored = await store.get_task(turnaround.turnaround_id, chocks.task_id)
    assert stored.status == TaskStatus.COMPLETED
    assert stored.completed_by == CrewMember(uid="bob", name="Bob Ramp")
    assert stored.completion_time is not None
    assert result.status == stored.status
    assert_lifecycle_consistent(stored)


async def test_unassigned_crew_cannot_complete(store, machine, turnaround, tasks):
    chocks = tasks[0]

    with pytest.raises(AuthorizationError):
        await machine.complete(FRANK, turnaround.turnaround_id, chocks.task_id)

    stored = await store.get_task(turnaround.turnaround_id, chocks.task_id)
    assert stored.status == TaskStatus.PENDING


async def test_supervisor_completes_on_behalf(store, machine, turnaround, tasks):
    result = await machine.complete(ALICE, turnaround.turnaround_id, tasks[0].task_id)

    assert result.completed_by.uid == "alice"


async def test_uncomplete_clears_completion(store, machine, turnaround, tasks):
    task_id = tasks[0].task_id
    await machine.complete(BOB, turnaround.turnaround_id, task_id)

    await machine.uncomplete(BOB, turnaround.turnaround_id, task_id)

    stored = await store.get_task(turnaround.turnaround_id, task_id)
    assert stored.status == TaskStatus.PENDING
    assert stored.completed_by is None
    assert stored.completion_time is None


async def test_report_delay_marks_task_and_turnaround(store, machine, turnaround, tasks):
    task_id = tasks[1].task_id

    result = await machine.report_delay(
        BOB, turnaround.turnaround_id, task_id,
        reason="  Late arrival of baggage cart. ", estimated_minutes="30"
    )

    stored = await store.get_task(turnaround.turnaround_id, task_id)
    assert stored == result
    assert stored.status == TaskStatus.DELAYED
    assert stored.is_delayed
    assert stored.delay_report.reason == "Late arrival of baggage cart."
    assert stored.delay_report.estimated_delay_minutes == 30
    assert stored.delay_report.reported_by == BOB
    assert_lifecycle_consistent(stored)

    owner = await store.get_turnaround(turnaround.turnaround_id)
    assert owner.status == TurnaroundStatus.DELAYED


@pytest.mark.parametrize("reason,minutes", [
    ("", 30),
    ("   ", 30),
    (None, 30),
    ("Fuel truck late", "abc"),
    ("Fuel truck late", 0),
    ("Fuel truck late", -5),
    ("Fuel truck late", None),
    ("Fuel truck late", ""),
])
async def test_invalid_delay_report_writes_nothing(store, machine, turnaround, tasks, reason, minutes):
    task_id = tasks[1].task_id

    with pytest.raises(ValidationError):
        await machine.report_delay(BOB, turnaround.turnaround_id, task_id, reason, minutes)

    stored = await store.get_task(turnaround.turnaround_id, task_id)
    assert stored == tasks[1]
    owner = await store.get_turnaround(turnaround.turnaround_id)
    assert owner.status == TurnaroundStatus.ON_TIME


async def test_authorization_checked_before_input(machine, turnaround, tasks):
    with pytest.raises(AuthorizationError):
        await machine.report_delay(FRANK, turnaround.turnaround_id, tasks[1].task_id, "", None)


async def test_clear_delay_keeps_turnaround_delayed(store, machine, turnaround, tasks):
    task_id = tasks[1].task_id
    await machine.report_delay(BOB, turnaround.turnaround_id, task_id, "Fuel truck late", 15)

    await machine.clear_delay(BOB, turnaround.turnaround_id, task_id)

    stored = await store.get_task(turnaround.turnaround_id, task_id)
    assert stored.status == TaskStatus.PENDING
    assert stored.delay_report is None
    assert not stored.is_delayed
    owner = await store.get_turnaround(turnaround.turnaround_id)
    assert owner.status == TurnaroundStatus.DELAYED


async def test_complete_delayed_task_drops_delay_report(store, machine, turnaround, tasks):
    task_id = tasks[1].task_id
    await machine.report_delay(BOB, turnaround.turnaround_id, task_id, "Fuel truck late", 15)

    result = await machine.complete(BOB, turnaround.turnaround_id, task_id)

    assert result.status == TaskStatus.COMPLETED
    assert result.delay_report is None
    assert_lifecycle_consistent(await store.get_task(turnaround.turnaround_id, task_id))


async def test_report_delay_on_completed_task(store, machine, turnaround, tasks):
    task_id = tasks[0].task_id
    await machine.complete(BOB, turnaround.turnaround_id, task_id)

    result = await machine.report_delay(BOB, turnaround.turnaround_id, task_id, "Chock slipped", 5)

    assert result.status == TaskStatus.DELAYED
    assert result.completed_by is None
    assert_lifecycle_consistent(await store.get_task(turnaround.turnaround_id, task_id))


async def test_repeated_complete_is_a_no_op(store, machine, turnaround, tasks):
    task_id = tasks[0].task_id
    first = await machine.complete(BOB, turnaround.turnaround_id, task_id)

    second = await machine.complete(ALICE, turnaround.turnaround_id, task_id)

    assert second.completed_by.uid == "bob"
    stored = await store.get_task(turnaround.turnaround_id, task_id)
    assert stored.completion_time == first.completion_time


async def test_uncomplete_pending_is_a_no_op(machine, turnaround, tasks):
    result = await machine.uncomplete(BOB, turnaround.turnaround_id, tasks[0].task_id)

    assert result == tasks[0]


async def test_illegal_transitions_are_rejected(machine, turnaround, tasks):
    task_id = tasks[1].task_id
    await machine.report_delay(BOB, turnaround.turnaround_id, task_id, "Fuel truck late", 15)

    with pytest.raises(InvalidTransitionError) as exc_info:
        await machine.uncomplete(BOB, turnaround.turnaround_id, task_id)
    assert exc_info.value.current == "Delayed"

    await machine.complete(BOB, turnaround.turnaround_id, task_id)
    with pytest.raises(InvalidTransitionError):
        await machine.clear_delay(BOB, turnaround.turnaround_id, task_id)


async def test_unknown_task(machine, turnaround):
    with pytest.raises(NotFoundError):
        await machine.complete(BOB, turnaround.turnaround_id, "missing")


async def test_every_sequence_keeps_lifecycle_fields_consistent(store, machine, turnaround, tasks):
    task_id = tasks[2].task_id
    steps = [
        lambda: machine.complete(DAVID, turnaround.turnaround_id, task_id),
        lambda: machine.report_delay(DAVID, turnaround.turnaround_id, task_id, "Oil leak", 45),
        lambda: machine.clear_delay(ALICE, turnaround.turnaround_id, task_id),
        lambda: machine.report_delay(ALICE, turnaround.turnaround_id, task_id, "Parts", "20"),
        lambda: machine.complete(DAVID, turnaround.turnaround_id, task_id),
        lambda: machine.uncomplete(DAVID, turnaround.turnaround_id, task_id),
    ]
    for step in steps:
        await step()
        assert_lifecycle_consistent(await store.get_task(turnaround.turnaround_id, task_id))


def test_parse_estimated_minutes():
    assert parse_estimated_minutes(30) == 30
    assert parse_estimated_minutes(" 45 ") == 45
    assert parse_estimated_minutes(15.0) == 15
    for value in (True, 2.5, "1e3", "thirty", [], 0):
        with pytest.raises(ValidationError):
            parse_estimated_minutes(value)


def test_validate_delay_reason_strips():
    assert validate_delay_reason("  Late cart ") == "Late cart"
