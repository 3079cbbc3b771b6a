"""Celery app and periodic tasks (audit retention sweep)."""

from typing import Optional

from celery import Celery
from celery.schedules import crontab

from planner.core.config import settings

celery_app = Celery(
    "team_planning",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_soft_time_limit=600,  # 10 min soft limit
    task_time_limit=900,  # 15 min hard limit
    beat_schedule={
        "audit-retention-daily": {
            "task": "cleanup_audit_logs",
            "schedule": crontab(hour=3, minute=0),
        },
    },
)


@celery_app.task(name="cleanup_audit_logs")
def cleanup_audit_logs(max_age_days: Optional[int] = None) -> dict:
    """Delete audit entries past the retention period."""
    from planner.db.session import SessionLocal
    from planner.services.audit_service import audit_service

    days = max_age_days or settings.AUDIT_RETENTION_DAYS
    db = SessionLocal()
    try:
        deleted = audit_service.cleanup(db, days)
        return {"deleted_count": deleted, "max_age_days": days}
    finally:
        db.close()
