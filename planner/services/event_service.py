"""Event service — audited create/update/delete plus calendar reads."""

import logging
from datetime import datetime
from typing import Optional, Dict, Any, List, Iterable

from sqlalchemy.orm import Session

from planner.core.config import settings
from planner.core.exceptions import ResourceNotFoundError, ValidationError
from planner.core.timeutils import utcnow, to_naive_utc, week_bounds
from planner.db.session import atomic
from planner.models.audit_log import AuditAction
from planner.models.event import Event, TeamEnum
from planner.services.audit_service import AuditService, RequestOrigin
from planner.services.conflict_service import ensure_no_conflicts

logger = logging.getLogger("planner")

TABLE_NAME = "events"

EDITABLE_FIELDS = (
    "title", "start_time", "end_time", "team",
    "animator", "color", "description", "metadata",
)


def validate_business_hours(start: datetime, end: datetime) -> None:
    """Reject events starting before opening or ending after closing hour."""
    if not settings.ENFORCE_BUSINESS_HOURS:
        return
    if start.hour < settings.BUSINESS_HOURS_START or end.hour > settings.BUSINESS_HOURS_END:
        raise ValidationError(
            f"Events must run between {settings.BUSINESS_HOURS_START}:00 "
            f"and {settings.BUSINESS_HOURS_END}:00"
        )


def _apply_fields(event: Event, data: Dict[str, Any]) -> None:
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key in ("start_time", "end_time") and value is not None:
            value = to_naive_utc(value)
        if key == "team" and value is not None:
            value = TeamEnum(value).value
        if key == "metadata":
            event.event_metadata = dict(value or {})
        else:
            setattr(event, key, value)


def _check_interval(event: Event) -> None:
    if event.end_time <= event.start_time:
        raise ValidationError("End time must be after start time")


class EventService:
    """Owns the events table; every mutation is audited in the same transaction."""

    @staticmethod
    def create(
        db: Session,
        data: Dict[str, Any],
        actor_id: str,
        origin: Optional[RequestOrigin] = None,
        check_conflicts: bool = True,
    ) -> Event:
        """Insert one event and its CREATE audit entry."""
        with atomic(db):
            now = utcnow()
            event = Event(created_by=actor_id, created_at=now, updated_at=now)
            _apply_fields(event, data)
            if event.event_metadata is None:
                event.event_metadata = {}
            _check_interval(event)

            if check_conflicts:
                ensure_no_conflicts(db, event.team, event.start_time, event.end_time)

            db.add(event)
            db.flush()

            AuditService.record(
                db, TABLE_NAME, event.id, AuditAction.CREATE, actor_id,
                after=event.to_snapshot(), origin=origin,
            )
        return event

    @staticmethod
    def get(db: Session, event_id: str) -> Event:
        """Get an event by id."""
        event = db.query(Event).filter(Event.id == event_id).first()
        if not event:
            raise ResourceNotFoundError(f"Event {event_id} not found")
        return event

    @staticmethod
    def update(
        db: Session,
        event_id: str,
        patch: Dict[str, Any],
        actor_id: str,
        origin: Optional[RequestOrigin] = None,
        check_conflicts: bool = True,
    ) -> Event:
        """Apply ``patch`` to an event and record an UPDATE with full snapshots."""
        with atomic(db):
            event = EventService.get(db, event_id)
            before = event.to_snapshot()

            _apply_fields(event, patch)
            _check_interval(event)

            if check_conflicts:
                ensure_no_conflicts(
                    db, event.team, event.start_time, event.end_time, exclude_id=event.id,
                )

            event.last_modified_by = actor_id
            event.updated_at = utcnow()
            db.flush()

            AuditService.record(
                db, TABLE_NAME, event.id, AuditAction.UPDATE, actor_id,
                before=before, after=event.to_snapshot(), origin=origin,
            )
        return event

    @staticmethod
    def delete(
        db: Session,
        event_id: str,
        actor_id: str,
        origin: Optional[RequestOrigin] = None,
    ) -> Dict[str, Any]:
        """Remove an event and record a DELETE; returns the removed state."""
        with atomic(db):
            event = EventService.get(db, event_id)
            before = event.to_snapshot()

            db.delete(event)
            db.flush()

            AuditService.record(
                db, TABLE_NAME, event_id, AuditAction.DELETE, actor_id,
                before=before, origin=origin,
            )
        return before

    @staticmethod
    def list_events(
        db: Session,
        team: Optional[str] = None,
        teams: Optional[Iterable[str]] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        created_by: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        """List events with filters, ordered by start time."""
        query = db.query(Event)

        if team:
            query = query.filter(Event.team == team)
        elif teams is not None:
            query = query.filter(Event.team.in_(list(teams)))
        if start_date:
            query = query.filter(Event.start_time >= to_naive_utc(start_date))
        if end_date:
            query = query.filter(Event.end_time <= to_naive_utc(end_date))
        if created_by:
            query = query.filter(Event.created_by == created_by)

        total = query.count()
        events = (
            query.order_by(Event.start_time.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {
            "events": events,
            "total": total,
            "page": page,
            "page_size": page_size,
            "has_next": page * page_size < total,
        }

    @staticmethod
    def week_events(db: Session, week_start, team: str) -> List[Event]:
        """Events of ``team`` starting within the 7-day window from ``week_start``."""
        start, end = week_bounds(week_start)
        return (
            db.query(Event)
            .filter(
                Event.team == team,
                Event.start_time >= start,
                Event.start_time <= end,
            )
            .order_by(Event.start_time.asc())
            .all()
        )

    @staticmethod
    def stats(
        db: Session,
        teams: Iterable[str],
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Per-team event count and booked hours."""
        query = db.query(Event).filter(Event.team.in_(list(teams)))
        if start_date:
            query = query.filter(Event.start_time >= to_naive_utc(start_date))
        if end_date:
            query = query.filter(Event.end_time <= to_naive_utc(end_date))

        totals: Dict[str, Dict[str, Any]] = {}
        for event in query.all():
            bucket = totals.setdefault(event.team, {"team": event.team, "total_events": 0, "total_hours": 0.0})
            bucket["total_events"] += 1
            bucket["total_hours"] += total_hours([event])
        return [totals[t] for t in sorted(totals)]


def total_hours(events: Iterable[Event]) -> float:
    return sum((e.end_time - e.start_time).total_seconds() for e in events) / 3600


event_service = EventService()
