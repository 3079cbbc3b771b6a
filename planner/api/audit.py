"""Audit API router (administrators only)."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from planner.core.middleware import log_sensitive_action
from planner.core.permissions import Actor, Capability, check
from planner.core.security import get_current_actor
from planner.db.session import get_db
from planner.models.audit_log import AuditAction
from planner.schemas.schemas import (
    AuditLogListResponse,
    AuditLogOut,
    CleanupRequest,
    CleanupResponse,
)
from planner.services.audit_service import audit_service

router = APIRouter(prefix="/audit", tags=["audit"])


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    check(actor, Capability.ADMIN)
    return actor


@router.get("/", response_model=AuditLogListResponse)
async def list_audit_logs(
    table_name: Optional[str] = Query(None),
    record_id: Optional[str] = Query(None),
    user_uid: Optional[str] = Query(None),
    action: Optional[AuditAction] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Query audit logs, newest first."""
    return audit_service.query_logs(
        db, table_name, record_id, user_uid, action, start_date, end_date, page, page_size,
    )


@router.get("/history/{table_name}/{record_id}", response_model=list[AuditLogOut])
async def record_history(
    table_name: str,
    record_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Every change of one record, oldest first, with field diffs on updates."""
    return audit_service.history(db, table_name, record_id)


@router.get("/export")
async def export_audit_logs(
    table_name: Optional[str] = Query(None),
    record_id: Optional[str] = Query(None),
    user_uid: Optional[str] = Query(None),
    action: Optional[AuditAction] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Download the filtered audit log as CSV."""
    content = audit_service.export_csv(
        db,
        table_name=table_name,
        record_id=record_id,
        user_uid=user_uid,
        action=action,
        start_date=start_date,
        end_date=end_date,
    )
    filename = f"audit-logs-{datetime.now().strftime('%Y%m%d-%H%M%S')}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/stats")
async def audit_stats(
    table_name: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Audit activity breakdown."""
    return audit_service.stats(db, start_date, end_date, table_name)


@router.post(
    "/cleanup",
    response_model=CleanupResponse,
    dependencies=[Depends(log_sensitive_action("AUDIT_CLEANUP"))],
)
async def cleanup_audit_logs(
    body: CleanupRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """Apply the retention policy now."""
    deleted = audit_service.cleanup(db, body.max_age_days)
    return CleanupResponse(deleted_count=deleted, max_age_days=body.max_age_days)
