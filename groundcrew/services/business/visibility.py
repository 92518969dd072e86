"""
Visibility filter.
Selects the turnarounds a crew member's client may observe.
"""
import logging
from typing import Iterable, List, Optional, Set, Tuple

from groundcrew.core.config import get_settings
from groundcrew.schemas.crew import CrewMember
from groundcrew.schemas.turnaround import Turnaround

logger = logging.getLogger(__name__)

MATCH_BY_UID = "uid"
MATCH_BY_CREW_SNAPSHOT = "crew_snapshot"

# (turnaround_id, uid) pairs already warned about; repeats log at DEBUG
_reported_stale: Set[Tuple[str, str]] = set()


def _match_mode(mode: Optional[str]) -> str:
    mode = mode or get_settings().VISIBILITY_MATCH_MODE
    if mode not in (MATCH_BY_UID, MATCH_BY_CREW_SNAPSHOT):
        raise ValueError(f"Unknown visibility match mode: {mode}")
    return mode


def is_visible(user: CrewMember, turnaround: Turnaround, mode: Optional[str] = None) -> bool:
    """
    Check whether the user may observe the turnaround.

    Supervisors see everything. Other roles need an assignedCrew entry:
    matched by uid, or by the full {uid, name, role} snapshot in
    crew_snapshot mode.
    """
    if user.is_supervisor:
        return True

    mode = _match_mode(mode)
    for member in turnaround.assigned_crew:
        if member.uid != user.uid:
            continue
        if member == user:
            return True
        if mode == MATCH_BY_CREW_SNAPSHOT:
            return False
        key = (turnaround.turnaround_id, user.uid)
        level = logging.DEBUG if key in _reported_stale else logging.WARNING
        _reported_stale.add(key)
        logger.log(
            level,
            f"Stale crew snapshot on turnaround {turnaround.turnaround_id} for {user.uid}",
            extra={
                "turnaround_id": turnaround.turnaround_id,
                "snapshot_name": member.name,
                "snapshot_role": member.role.value if member.role else None,
                "current_name": user.name,
                "current_role": user.role.value if user.role else None,
            }
        )
        return True
    return False


def visible_turnarounds(
    user: CrewMember,
    turnarounds: Iterable[Turnaround],
    mode: Optional[str] = None
) -> List[Turnaround]:
    """Filter turnarounds down to those the user may observe, keyed by ID"""
    by_id = {}
    for turnaround in turnarounds:
        if is_visible(user, turnaround, mode):
            by_id[turnaround.turnaround_id] = turnaround
    return list(by_id.values())
