"""Planning API router — week duplication, templates, bulk creation, overview."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from planner.core.middleware import log_sensitive_action, request_origin
from planner.core.permissions import Actor, Capability, accessible_teams, check
from planner.core.security import get_current_actor
from planner.db.session import get_db
from planner.models.event import TeamEnum
from planner.schemas.schemas import (
    ApplyTemplateRequest,
    ApplyTemplateResponse,
    BulkCreateRequest,
    BulkCreateResponse,
    DuplicateWeekRequest,
    DuplicateWeekResponse,
    EventOut,
    MessageResponse,
    TemplateCreate,
    TemplateOut,
)
from planner.services.audit_service import RequestOrigin
from planner.services.planning_service import planning_service

router = APIRouter(prefix="/planning", tags=["planning"])


@router.post(
    "/duplicate",
    response_model=DuplicateWeekResponse,
    dependencies=[Depends(log_sensitive_action("DUPLICATE_PLANNING"))],
)
async def duplicate_week(
    body: DuplicateWeekRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    origin: RequestOrigin = Depends(request_origin),
):
    """Copy a team's week onto another week, optionally replacing its content."""
    check(actor, Capability.WRITE_TEAM, team=body.team.value)
    events = planning_service.duplicate_week(
        db,
        body.source_week,
        body.target_week,
        body.team.value,
        actor.uid,
        overwrite=body.overwrite,
        origin=origin,
    )
    return DuplicateWeekResponse(
        duplicated_count=len(events),
        events=[EventOut.model_validate(e) for e in events],
        source_week=body.source_week,
        target_week=body.target_week,
        team=body.team.value,
        overwrite=body.overwrite,
    )


@router.get("/templates", response_model=list[TemplateOut])
async def list_templates(
    team: Optional[TeamEnum] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """List active templates of the caller's teams."""
    if team:
        check(actor, Capability.READ_TEAM, team=team.value)
    return planning_service.list_templates(
        db, accessible_teams(actor), team=team.value if team else None,
    )


@router.post("/templates", response_model=TemplateOut, status_code=201)
async def create_template(
    body: TemplateCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    origin: RequestOrigin = Depends(request_origin),
):
    """Create a planning template."""
    check(actor, Capability.WRITE_TEAM, team=body.team.value)
    return planning_service.create_template(
        db,
        body.name,
        body.team.value,
        [d.model_dump() for d in body.template_events],
        actor.uid,
        description=body.description,
        origin=origin,
    )


@router.get("/templates/{template_id}", response_model=TemplateOut)
async def get_template(
    template_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Get an active template."""
    template = planning_service.get_template(db, template_id)
    check(actor, Capability.READ_TEAM, team=template.team)
    return template


@router.delete("/templates/{template_id}", response_model=MessageResponse)
async def deactivate_template(
    template_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    origin: RequestOrigin = Depends(request_origin),
):
    """Deactivate a template (it stays in the audit history)."""
    template = planning_service.get_template(db, template_id)
    check(actor, Capability.WRITE_TEAM, team=template.team)
    planning_service.deactivate_template(db, template_id, actor.uid, origin=origin)
    return MessageResponse(message="Template deactivated")


@router.post(
    "/templates/{template_id}/apply",
    response_model=ApplyTemplateResponse,
    dependencies=[Depends(log_sensitive_action("APPLY_TEMPLATE"))],
)
async def apply_template(
    template_id: str,
    body: ApplyTemplateRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    origin: RequestOrigin = Depends(request_origin),
):
    """Expand a template onto a target week."""
    template = planning_service.get_template(db, template_id)
    check(actor, Capability.WRITE_TEAM, team=template.team)
    template, events = planning_service.apply_template(
        db, template_id, body.target_week, actor.uid,
        overwrite=body.overwrite, origin=origin,
    )
    return ApplyTemplateResponse(
        template_name=template.name,
        created_count=len(events),
        events=[EventOut.model_validate(e) for e in events],
        target_week=body.target_week,
        overwrite=body.overwrite,
    )


@router.get("/overview")
async def overview(
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Planning of every team the caller can see over a period."""
    teams = accessible_teams(actor)
    result = planning_service.overview(db, teams, start_date, end_date)
    return {
        "data": {
            team: {
                "events": [EventOut.model_validate(e) for e in block["events"]],
                "total_count": block["total_count"],
                "total_hours": block["total_hours"],
            }
            for team, block in result.items()
        },
        "meta": {
            "period": {"start_date": start_date, "end_date": end_date},
            "teams": teams,
        },
    }


@router.post(
    "/bulk-create",
    response_model=BulkCreateResponse,
    dependencies=[Depends(log_sensitive_action("BULK_CREATE_EVENTS"))],
)
async def bulk_create(
    body: BulkCreateRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    origin: RequestOrigin = Depends(request_origin),
):
    """Create up to the configured number of events; failures are reported per item."""
    result = planning_service.bulk_create(
        db, [e.model_dump() for e in body.events], actor, origin=origin,
    )
    return BulkCreateResponse(
        created_count=len(result["created"]),
        error_count=len(result["errors"]),
        created_events=[EventOut.model_validate(e) for e in result["created"]],
        errors=result["errors"],
    )
