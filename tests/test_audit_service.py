"""
Unit tests for the audit recorder: diffs, history, listing, retention, export.
"""

import csv
import io
from datetime import datetime, timedelta

from planner.core.timeutils import utcnow
from planner.models.audit_log import AuditAction, AuditLog
from planner.models.user import User
from planner.services.audit_service import AuditService, RequestOrigin
from planner.services.event_service import EventService


def test_diff_of_identical_snapshots_is_empty():
    snapshot = {"title": "Quiz", "metadata": {"room": "A", "tags": [1, 2]}}

    assert AuditService.diff(snapshot, {"title": "Quiz", "metadata": {"room": "A", "tags": [1, 2]}}) == []


def test_diff_reports_single_changed_field():
    before = {"title": "Quiz", "team": "animation"}
    after = {"title": "Bingo", "team": "animation"}

    assert AuditService.diff(before, after) == [
        {"field": "title", "old_value": "Quiz", "new_value": "Bingo"},
    ]


def test_diff_compares_nested_values_structurally():
    before = {"metadata": {"room": "A"}}
    after = {"metadata": {"room": "B"}}

    assert AuditService.diff(before, after) == [
        {"field": "metadata", "old_value": {"room": "A"}, "new_value": {"room": "B"}},
    ]


def test_diff_ignores_keys_absent_from_after_and_reports_new_keys():
    before = {"title": "Quiz", "color": "#FF0000"}
    after = {"title": "Quiz", "animator": None}

    assert AuditService.diff(before, after) == [
        {"field": "animator", "old_value": None, "new_value": None},
    ]


def test_record_does_not_commit(db):
    AuditService.record(db, "events", "e-1", AuditAction.CREATE, "u-1", after={"id": "e-1"})

    assert db.query(AuditLog).count() == 1
    db.rollback()
    assert db.query(AuditLog).count() == 0


def test_record_keeps_request_origin(db):
    entry = AuditService.record(
        db, "events", "e-1", AuditAction.DELETE, "u-1",
        before={"id": "e-1"},
        origin=RequestOrigin(ip_address="10.0.0.1", user_agent="pytest"),
    )

    assert entry.ip_address == "10.0.0.1"
    assert entry.user_agent == "pytest"
    assert entry.new_values is None


def test_history_is_oldest_first_with_update_diff(db, make_event):
    event = make_event(datetime(2025, 8, 25, 14), datetime(2025, 8, 25, 15), title="Quiz")
    EventService.update(db, event.id, {"title": "Bingo"}, "manager-2")

    history = AuditService.history(db, "events", event.id)

    assert [h["action"] for h in history] == ["CREATE", "UPDATE"]
    assert "changes" not in history[0]
    changed = {c["field"] for c in history[1]["changes"]}
    assert changed - {"updated_at"} == {"title", "last_modified_by"}
    title_change = next(c for c in history[1]["changes"] if c["field"] == "title")
    assert title_change == {"field": "title", "old_value": "Quiz", "new_value": "Bingo"}


def test_query_logs_newest_first_with_filters_and_actor_names(db, make_event):
    db.add(User(uid="manager-1", email="manager@planning.local", display_name="Manon"))
    db.commit()
    first = make_event(datetime(2025, 8, 25, 10), datetime(2025, 8, 25, 11))
    second = make_event(datetime(2025, 8, 25, 12), datetime(2025, 8, 25, 13))
    EventService.delete(db, first.id, "other-user")

    result = AuditService.query_logs(db, table_name="events", page=1, page_size=2)

    assert result["total"] == 3
    assert result["has_next"] is True
    assert [log["action"] for log in result["logs"]] == ["DELETE", "CREATE"]
    assert result["logs"][1]["record_id"] == second.id
    assert result["logs"][1]["user_name"] == "Manon"
    assert result["logs"][0]["user_email"] is None

    only_creates = AuditService.query_logs(db, action="CREATE", user_uid="manager-1")
    assert only_creates["total"] == 2


def test_cleanup_is_idempotent(db, make_event):
    make_event(datetime(2025, 8, 25, 10), datetime(2025, 8, 25, 11))
    make_event(datetime(2025, 8, 25, 12), datetime(2025, 8, 25, 13))
    db.query(AuditLog).update({AuditLog.created_at: utcnow() - timedelta(days=120)})
    db.commit()
    make_event(datetime(2025, 8, 25, 14), datetime(2025, 8, 25, 15))

    assert AuditService.cleanup(db, 90) == 2
    assert AuditService.cleanup(db, 90) == 0
    assert db.query(AuditLog).count() == 1


def test_export_csv_column_order(db, make_event):
    event = make_event(datetime(2025, 8, 25, 10), datetime(2025, 8, 25, 11), title="Quiz")

    rows = list(csv.reader(io.StringIO(AuditService.export_csv(db))))

    assert rows[0] == [
        "timestamp", "action", "table", "record_id", "user_email",
        "user_name", "ip_address", "old_values", "new_values",
    ]
    assert len(rows) == 2
    assert rows[1][1:4] == ["CREATE", "events", event.id]
    assert rows[1][7] == ""
    assert '"title": "Quiz"' in rows[1][8]


def test_stats_groups_by_action_and_table(db, make_event):
    event = make_event(datetime(2025, 8, 25, 10), datetime(2025, 8, 25, 11))
    EventService.delete(db, event.id, "manager-1")

    stats = AuditService.stats(db)

    assert sorted((s["action"], s["count"]) for s in stats["by_action"]) == [("CREATE", 1), ("DELETE", 1)]
    assert stats["by_table"] == [{"table": "events", "count": 2}]
    assert stats["top_users"][0]["uid"] == "manager-1"
    assert sum(d["count"] for d in stats["daily_activity"]) == 2
