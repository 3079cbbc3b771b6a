"""Events API router."""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from planner.core.config import settings
from planner.core.middleware import log_sensitive_action, request_origin
from planner.core.permissions import Actor, Capability, accessible_teams, check
from planner.core.security import get_current_actor
from planner.db.session import get_db
from planner.models.event import TeamEnum
from planner.schemas.schemas import (
    ConflictCheckRequest,
    ConflictCheckResponse,
    EventCreate,
    EventListResponse,
    EventOut,
    EventUpdate,
)
from planner.services.audit_service import RequestOrigin
from planner.services.conflict_service import conflict_summary, find_conflicts
from planner.services.event_service import event_service, validate_business_hours

router = APIRouter(prefix="/events", tags=["events"])

NULLABLE_FIELDS = ("animator", "color", "description")


@router.get("/", response_model=EventListResponse)
async def list_events(
    team: Optional[TeamEnum] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """List events of the teams the caller can see."""
    if team:
        check(actor, Capability.READ_TEAM, team=team.value)
    return event_service.list_events(
        db,
        team=team.value if team else None,
        teams=accessible_teams(actor),
        start_date=start_date,
        end_date=end_date,
        page=page,
        page_size=page_size,
    )


@router.get("/week/{week_start}", response_model=list[EventOut])
async def get_week(
    week_start: date,
    team: TeamEnum = Query(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Events of a team for the 7 days starting at ``week_start``."""
    check(actor, Capability.READ_TEAM, team=team.value)
    return event_service.week_events(db, week_start, team.value)


@router.post("/conflicts/check", response_model=ConflictCheckResponse)
async def check_conflicts(
    body: ConflictCheckRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Pre-submit check: which events would the interval collide with."""
    check(actor, Capability.READ_TEAM, team=body.team.value)
    conflicts = find_conflicts(
        db, body.team.value, body.start_time, body.end_time, body.exclude_event_id,
    )
    return ConflictCheckResponse(
        has_conflicts=bool(conflicts),
        conflicts=[conflict_summary(e) for e in conflicts],
    )


@router.get("/stats/summary")
async def stats_summary(
    team: Optional[TeamEnum] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Event count and booked hours per team."""
    if team:
        check(actor, Capability.READ_TEAM, team=team.value)
        teams = [team.value]
    else:
        teams = accessible_teams(actor)
    return event_service.stats(db, teams, start_date, end_date)


@router.get("/{event_id}", response_model=EventOut)
async def get_event(
    event_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Get an event."""
    event = event_service.get(db, event_id)
    check(actor, Capability.READ_TEAM, team=event.team)
    return event


@router.post(
    "/",
    response_model=EventOut,
    status_code=201,
    dependencies=[Depends(log_sensitive_action("CREATE_EVENT"))],
)
async def create_event(
    body: EventCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    origin: RequestOrigin = Depends(request_origin),
):
    """Create an event; rejected with 409 when it overlaps the team's planning."""
    check(actor, Capability.WRITE_TEAM, team=body.team.value)
    validate_business_hours(body.start_time, body.end_time)
    return event_service.create(db, body.model_dump(), actor.uid, origin=origin)


@router.put(
    "/{event_id}",
    response_model=EventOut,
    dependencies=[Depends(log_sensitive_action("UPDATE_EVENT"))],
)
async def update_event(
    event_id: str,
    body: EventUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    origin: RequestOrigin = Depends(request_origin),
):
    """Update an event (admin, manager of its team, or its creator)."""
    event = event_service.get(db, event_id)
    check(actor, Capability.MODIFY_EVENT, event=event)

    patch = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key in NULLABLE_FIELDS
    }
    if patch.get("team") and patch["team"] != event.team:
        check(actor, Capability.WRITE_TEAM, team=patch["team"].value)
    validate_business_hours(
        patch.get("start_time") or event.start_time,
        patch.get("end_time") or event.end_time,
    )
    return event_service.update(db, event_id, patch, actor.uid, origin=origin)


@router.delete(
    "/{event_id}",
    response_model=EventOut,
    dependencies=[Depends(log_sensitive_action("DELETE_EVENT"))],
)
async def delete_event(
    event_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    origin: RequestOrigin = Depends(request_origin),
):
    """Delete an event and return what was removed."""
    event = event_service.get(db, event_id)
    check(actor, Capability.MODIFY_EVENT, event=event)
    return event_service.delete(db, event_id, actor.uid, origin=origin)
