"""
Tests for the retention task and the planctl commands.
"""

from datetime import datetime, timedelta

from typer.testing import CliRunner

from planner.cli import app
from planner.core.security import actor_from_claims, decode_token
from planner.core.timeutils import utcnow
from planner.models.audit_log import AuditLog
from planner.tasks.celery_app import celery_app, cleanup_audit_logs


def test_cleanup_task_uses_retention_default(db, make_event, session_factory, monkeypatch):
    monkeypatch.setattr("planner.db.session.SessionLocal", session_factory)
    make_event(datetime(2025, 8, 25, 10), datetime(2025, 8, 25, 11))
    db.query(AuditLog).update({AuditLog.created_at: utcnow() - timedelta(days=91)})
    db.commit()

    assert cleanup_audit_logs() == {"deleted_count": 1, "max_age_days": 90}
    assert cleanup_audit_logs(max_age_days=7) == {"deleted_count": 0, "max_age_days": 7}


def test_retention_is_scheduled_daily():
    entry = celery_app.conf.beat_schedule["audit-retention-daily"]

    assert entry["task"] == "cleanup_audit_logs"


def test_token_command_mints_decodable_token():
    result = CliRunner().invoke(app, ["token", "manager-1", "--role", "manager", "--team", "bar"])

    assert result.exit_code == 0
    actor = actor_from_claims(decode_token(result.output.strip()))
    assert actor.uid == "manager-1"
    assert actor.role == "manager"
    assert actor.teams == ["bar"]
