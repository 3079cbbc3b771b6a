"""Planning service — week duplication, template application, bulk creation."""

import logging
from datetime import datetime, time, timedelta
from typing import Optional, List, Dict, Any, Iterable, Tuple

from sqlalchemy.orm import Session

from planner.core.config import settings
from planner.core.exceptions import (
    EmptySourceWeekError,
    PlanningError,
    ResourceNotFoundError,
    ValidationError,
)
from planner.core.permissions import Actor, Capability, check
from planner.core.timeutils import start_of_day, utcnow, to_naive_utc
from planner.db.session import atomic
from planner.models.audit_log import AuditAction
from planner.models.event import Event, TeamEnum
from planner.models.planning_template import PlanningTemplate
from planner.services.audit_service import AuditService, RequestOrigin
from planner.services.event_service import EventService, total_hours

logger = logging.getLogger("planner")

TEMPLATE_TABLE = "planning_templates"

COPIED_FIELDS = ("title", "team", "animator", "color", "description")


class PlanningService:
    """Derives concrete events from an existing week or from a stored template.

    Every derived event goes through ``EventService`` so it gets the same
    conflict check and CREATE audit entry as a manually created one; the
    whole derivation shares a single transaction.
    """

    @staticmethod
    def _purge_week(
        db: Session,
        week_start: datetime,
        team: str,
        actor_id: str,
        origin: Optional[RequestOrigin],
    ) -> int:
        existing = EventService.week_events(db, week_start, team)
        for event in existing:
            EventService.delete(db, event.id, actor_id, origin=origin)
        return len(existing)

    @staticmethod
    def duplicate_week(
        db: Session,
        source_week_start,
        target_week_start,
        team: str,
        actor_id: str,
        overwrite: bool = False,
        origin: Optional[RequestOrigin] = None,
    ) -> List[Event]:
        """Copy every event of the source week onto the target week.

        Raises:
            EmptySourceWeekError: If the source week holds no event for ``team``.
            EventConflictError: If a copy would overlap an event left in the target week.
        """
        team = TeamEnum(team).value
        source = start_of_day(source_week_start)
        target = start_of_day(target_week_start)
        day_offset = timedelta(days=(target - source).days)

        with atomic(db):
            source_events = EventService.week_events(db, source, team)
            if not source_events:
                raise EmptySourceWeekError(
                    f"No events found for team '{team}' in week of {source.date().isoformat()}"
                )

            # Detach the source data first, an overwrite may delete these rows
            blueprints = []
            for event in source_events:
                data = {key: getattr(event, key) for key in COPIED_FIELDS}
                data["metadata"] = dict(event.event_metadata or {})
                data["start_time"] = event.start_time + day_offset
                data["end_time"] = event.end_time + day_offset
                blueprints.append(data)

            if overwrite:
                purged = PlanningService._purge_week(db, target, team, actor_id, origin)
                logger.info("Cleared %s events of team %s in week %s", purged, team, target.date())

            duplicated = [
                EventService.create(db, data, actor_id, origin=origin)
                for data in blueprints
            ]

        logger.info(
            "Duplicated %s events of team %s from %s to %s",
            len(duplicated), team, source.date(), target.date(),
        )
        return duplicated

    @staticmethod
    def expand_definition(definition: Dict[str, Any], week_start: datetime, team: str) -> Dict[str, Any]:
        """Turn one relative template definition into concrete event data."""
        day = start_of_day(week_start).date() + timedelta(days=int(definition.get("day_offset") or 0))
        start = datetime.combine(
            day, time(int(definition["start_hour"]), int(definition.get("start_minute") or 0)),
        )
        end = datetime.combine(
            day, time(int(definition["end_hour"]), int(definition.get("end_minute") or 0)),
        )
        return {
            "title": definition["title"],
            "start_time": start,
            "end_time": end,
            "team": team,
            "animator": definition.get("animator"),
            "color": definition.get("color"),
            "description": definition.get("description"),
            "metadata": dict(definition.get("metadata") or {}),
        }

    @staticmethod
    def apply_template(
        db: Session,
        template_id: str,
        target_week_start,
        actor_id: str,
        overwrite: bool = False,
        origin: Optional[RequestOrigin] = None,
    ) -> Tuple[PlanningTemplate, List[Event]]:
        """Expand a template onto the target week; the template itself is untouched."""
        target = start_of_day(target_week_start)

        with atomic(db):
            template = PlanningService.get_template(db, template_id)

            if overwrite:
                purged = PlanningService._purge_week(db, target, template.team, actor_id, origin)
                logger.info("Cleared %s events of team %s in week %s", purged, template.team, target.date())

            created = [
                EventService.create(
                    db,
                    PlanningService.expand_definition(definition, target, template.team),
                    actor_id,
                    origin=origin,
                )
                for definition in template.template_events
            ]

        logger.info(
            "Applied template '%s' to week %s: %s events created",
            template.name, target.date(), len(created),
        )
        return template, created

    # ---- Templates ----

    @staticmethod
    def create_template(
        db: Session,
        name: str,
        team: str,
        template_events: List[Dict[str, Any]],
        actor_id: str,
        description: Optional[str] = None,
        origin: Optional[RequestOrigin] = None,
    ) -> PlanningTemplate:
        """Create a new planning template."""
        with atomic(db):
            now = utcnow()
            template = PlanningTemplate(
                name=name,
                description=description,
                team=TeamEnum(team).value,
                template_events=list(template_events),
                created_by=actor_id,
                active=True,
                created_at=now,
                updated_at=now,
            )
            db.add(template)
            db.flush()
            AuditService.record(
                db, TEMPLATE_TABLE, template.id, AuditAction.CREATE, actor_id,
                after=template.to_snapshot(), origin=origin,
            )
        return template

    @staticmethod
    def get_template(db: Session, template_id: str) -> PlanningTemplate:
        """Get an active template by id."""
        template = (
            db.query(PlanningTemplate)
            .filter(PlanningTemplate.id == template_id, PlanningTemplate.active.is_(True))
            .first()
        )
        if not template:
            raise ResourceNotFoundError(f"Template {template_id} not found")
        return template

    @staticmethod
    def list_templates(
        db: Session,
        teams: Iterable[str],
        team: Optional[str] = None,
    ) -> List[PlanningTemplate]:
        """Active templates of the given teams, newest first."""
        query = db.query(PlanningTemplate).filter(PlanningTemplate.active.is_(True))
        if team:
            query = query.filter(PlanningTemplate.team == team)
        else:
            query = query.filter(PlanningTemplate.team.in_(list(teams)))
        return query.order_by(PlanningTemplate.created_at.desc()).all()

    @staticmethod
    def deactivate_template(
        db: Session,
        template_id: str,
        actor_id: str,
        origin: Optional[RequestOrigin] = None,
    ) -> PlanningTemplate:
        """Soft-delete a template."""
        with atomic(db):
            template = PlanningService.get_template(db, template_id)
            before = template.to_snapshot()
            template.active = False
            template.updated_at = utcnow()
            db.flush()
            AuditService.record(
                db, TEMPLATE_TABLE, template.id, AuditAction.UPDATE, actor_id,
                before=before, after=template.to_snapshot(), origin=origin,
            )
        return template

    # ---- Bulk / overview ----

    @staticmethod
    def bulk_create(
        db: Session,
        items: List[Dict[str, Any]],
        actor: Actor,
        origin: Optional[RequestOrigin] = None,
    ) -> Dict[str, Any]:
        """Create many events, each in its own transaction.

        A failing item is reported by index and does not undo the others.
        """
        if not items:
            raise ValidationError("At least one event is required")
        if len(items) > settings.BULK_CREATE_LIMIT:
            raise ValidationError(f"At most {settings.BULK_CREATE_LIMIT} events per bulk creation")

        created, errors = [], []
        for index, data in enumerate(items):
            try:
                check(actor, Capability.WRITE_TEAM, team=data.get("team"))
                created.append(EventService.create(db, data, actor.uid, origin=origin))
            except PlanningError as exc:
                errors.append({"index": index, "error": exc.message})

        logger.info("Bulk creation by %s: %s created, %s failed", actor.uid, len(created), len(errors))
        return {"created": created, "errors": errors}

    @staticmethod
    def overview(
        db: Session,
        teams: Iterable[str],
        start_date: datetime,
        end_date: datetime,
    ) -> Dict[str, Any]:
        """Events per team over a period with booked hours."""
        start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
        result = {}
        for team in teams:
            events = (
                db.query(Event)
                .filter(
                    Event.team == team,
                    Event.start_time >= start_date,
                    Event.end_time <= end_date,
                )
                .order_by(Event.start_time.asc())
                .all()
            )
            result[team] = {
                "events": events,
                "total_count": len(events),
                "total_hours": total_hours(events),
            }
        return result


planning_service = PlanningService()
