"""Conflict detection between event intervals of one team.

Two intervals of the same team conflict when ``start < other_end`` and
``other_start < end``; touching boundaries (end == start) do not conflict.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from planner.core.exceptions import EventConflictError
from planner.core.timeutils import to_naive_utc
from planner.models.event import Event


def find_conflicts(
    db: Session,
    team: str,
    start: datetime,
    end: datetime,
    exclude_id: Optional[str] = None,
) -> List[Event]:
    """Return events of ``team`` overlapping ``[start, end)``.

    Reads through the caller's session, so rows flushed earlier in the same
    transaction are seen. Advisory only: a concurrent transaction can still
    commit an overlapping row after this check passes.
    """
    start, end = to_naive_utc(start), to_naive_utc(end)
    query = db.query(Event).filter(
        Event.team == team,
        Event.start_time < end,
        Event.end_time > start,
    )
    if exclude_id:
        query = query.filter(Event.id != exclude_id)
    return query.order_by(Event.start_time.asc()).all()


def ensure_no_conflicts(
    db: Session,
    team: str,
    start: datetime,
    end: datetime,
    exclude_id: Optional[str] = None,
) -> None:
    conflicts = find_conflicts(db, team, start, end, exclude_id)
    if conflicts:
        # Summaries are taken now, the rollback that follows expires the rows
        raise EventConflictError([conflict_summary(e) for e in conflicts])


def conflict_summary(event: Event) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "start": event.start_time,
        "end": event.end_time,
    }
