"""Which turnarounds a crew member may observe."""

from __future__ import annotations

import logging

import pytest

from groundcrew.models.crew import CrewRole
from groundcrew.schemas.crew import CrewMember
from groundcrew.schemas.turnaround import FlightInfo, Turnaround
from groundcrew.services.business import visibility
from groundcrew.services.business.visibility import (
    MATCH_BY_CREW_SNAPSHOT,
    MATCH_BY_UID,
    is_visible,
    visible_turnarounds,
)

from conftest import ALICE, BA2490, BOB, CHARLIE, DAVID, EVE, FRANK

UA88 = FlightInfo(flight_number="UA88", origin="EWR", aircraft_type="777-300ER")

BA = Turnaround(turnaround_id="ba", flight_info=BA2490, gate="B34", assigned_crew=[ALICE, BOB, DAVID, EVE])
UA = Turnaround(turnaround_id="ua", flight_info=UA88, gate="C12", assigned_crew=[ALICE, BOB, FRANK, EVE])


@pytest.mark.parametrize("mode", [MATCH_BY_UID, MATCH_BY_CREW_SNAPSHOT])
def test_supervisor_sees_everything(mode):
    unassigned = Turnaround(turnaround_id="x", flight_info=UA88, gate="D1", assigned_crew=[])

    assert visible_turnarounds(ALICE, [BA, UA, unassigned], mode) == [BA, UA, unassigned]


@pytest.mark.parametrize("mode", [MATCH_BY_UID, MATCH_BY_CREW_SNAPSHOT])
def test_crew_sees_assigned_turnarounds(mode):
    assert visible_turnarounds(BOB, [BA, UA], mode) == [BA, UA]
    assert visible_turnarounds(FRANK, [BA, UA], mode) == [UA]
    assert visible_turnarounds(CHARLIE, [BA, UA], mode) == []


def test_stale_snapshot_matches_by_uid(caplog, monkeypatch):
    monkeypatch.setattr(visibility, "_reported_stale", set())
    promoted_bob = CrewMember(uid="bob", name="Bob Ramp", role=CrewRole.CATERING)

    with caplog.at_level(logging.WARNING):
        assert is_visible(promoted_bob, BA, MATCH_BY_UID)
    assert "Stale crew snapshot" in caplog.text

    assert not is_visible(promoted_bob, BA, MATCH_BY_CREW_SNAPSHOT)


def test_stale_snapshot_warns_once_per_turnaround(caplog, monkeypatch):
    monkeypatch.setattr(visibility, "_reported_stale", set())
    promoted_bob = CrewMember(uid="bob", name="Bob Ramp", role=CrewRole.CATERING)

    with caplog.at_level(logging.DEBUG, logger=visibility.__name__):
        for _ in range(3):
            visible_turnarounds(promoted_bob, [BA, UA], MATCH_BY_UID)

    warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert sorted(record.turnaround_id for record in warnings) == ["ba", "ua"]
    repeats = [record for record in caplog.records if record.levelno == logging.DEBUG]
    assert len(repeats) == 4


def test_duplicate_turnarounds_collapse_by_id():
    assert visible_turnarounds(BOB, [BA, UA, BA], MATCH_BY_UID) == [BA, UA]


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        is_visible(BOB, BA, "by_name")
