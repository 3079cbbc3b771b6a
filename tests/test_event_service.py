"""
Unit tests for audited event mutations and calendar reads.
"""

from datetime import date, datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError

from planner.core.config import settings
from planner.core.exceptions import (
    EventConflictError,
    ResourceNotFoundError,
    TransactionFailureError,
    ValidationError,
)
from planner.models.audit_log import AuditLog
from planner.models.event import Event
from planner.services.audit_service import AuditService
from planner.services.event_service import EventService, validate_business_hours


def test_create_writes_event_and_create_audit(db, make_event):
    event = make_event(datetime(2025, 8, 25, 14), datetime(2025, 8, 25, 15), metadata={"room": "pool"})

    log = db.query(AuditLog).one()
    assert log.action == "CREATE"
    assert log.table_name == "events"
    assert log.record_id == event.id
    assert log.old_values is None
    assert log.new_values["title"] == "Event"
    assert log.new_values["metadata"] == {"room": "pool"}
    assert event.event_metadata == {"room": "pool"}


def test_create_rolls_back_event_when_audit_fails(db, monkeypatch):
    def failing_record(*args, **kwargs):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr(AuditService, "record", staticmethod(failing_record))

    with pytest.raises(RuntimeError):
        EventService.create(db, {
            "title": "Quiz",
            "start_time": datetime(2025, 8, 25, 14),
            "end_time": datetime(2025, 8, 25, 15),
            "team": "animation",
        }, "manager-1")

    assert db.query(Event).count() == 0
    assert db.query(AuditLog).count() == 0


def test_storage_failure_becomes_transaction_failure(db, monkeypatch):
    def failing_record(*args, **kwargs):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(AuditService, "record", staticmethod(failing_record))

    with pytest.raises(TransactionFailureError):
        EventService.create(db, {
            "title": "Quiz",
            "start_time": datetime(2025, 8, 25, 14),
            "end_time": datetime(2025, 8, 25, 15),
            "team": "bar",
        }, "manager-1")

    assert db.query(Event).count() == 0


def test_create_rejects_overlap_and_leaves_no_trace(db, make_event):
    existing = make_event(datetime(2025, 8, 25, 14), datetime(2025, 8, 25, 15, 30))

    with pytest.raises(EventConflictError) as exc_info:
        make_event(datetime(2025, 8, 25, 15), datetime(2025, 8, 25, 16))

    assert [c["id"] for c in exc_info.value.conflicts] == [existing.id]
    assert db.query(Event).count() == 1
    assert db.query(AuditLog).count() == 1


def test_adjacent_events_do_not_conflict(make_event):
    make_event(datetime(2025, 8, 25, 14), datetime(2025, 8, 25, 15))
    make_event(datetime(2025, 8, 25, 15), datetime(2025, 8, 25, 16))


def test_create_rejects_inverted_interval(make_event):
    with pytest.raises(ValidationError):
        make_event(datetime(2025, 8, 25, 15), datetime(2025, 8, 25, 14))


def test_update_records_before_and_after(db, make_event):
    event = make_event(datetime(2025, 8, 25, 14), datetime(2025, 8, 25, 15), title="Quiz")

    updated = EventService.update(db, event.id, {"title": "Bingo"}, "manager-2")

    assert updated.title == "Bingo"
    assert updated.last_modified_by == "manager-2"
    log = db.query(AuditLog).filter(AuditLog.action == "UPDATE").one()
    assert log.old_values["title"] == "Quiz"
    assert log.new_values["title"] == "Bingo"
    assert log.user_uid == "manager-2"


def test_update_can_keep_its_own_slot(db, make_event):
    event = make_event(datetime(2025, 8, 25, 14), datetime(2025, 8, 25, 15))

    updated = EventService.update(db, event.id, {"end_time": datetime(2025, 8, 25, 15, 30)}, "manager-1")

    assert updated.end_time == datetime(2025, 8, 25, 15, 30)


def test_update_into_other_event_conflicts(db, make_event):
    make_event(datetime(2025, 8, 25, 14), datetime(2025, 8, 25, 15))
    other = make_event(datetime(2025, 8, 25, 16), datetime(2025, 8, 25, 17))

    with pytest.raises(EventConflictError):
        EventService.update(db, other.id, {"start_time": datetime(2025, 8, 25, 14, 30)}, "manager-1")

    db.refresh(other)
    assert other.start_time == datetime(2025, 8, 25, 16)


def test_delete_returns_snapshot_and_audits(db, make_event):
    event_id = make_event(datetime(2025, 8, 25, 14), datetime(2025, 8, 25, 15), title="Quiz").id

    removed = EventService.delete(db, event_id, "manager-1")

    assert removed["title"] == "Quiz"
    assert db.query(Event).count() == 0
    log = db.query(AuditLog).filter(AuditLog.action == "DELETE").one()
    assert log.old_values["id"] == event_id
    assert log.new_values is None


def test_missing_event_raises_not_found(db):
    with pytest.raises(ResourceNotFoundError):
        EventService.get(db, "missing")
    with pytest.raises(ResourceNotFoundError):
        EventService.update(db, "missing", {"title": "x"}, "manager-1")
    with pytest.raises(ResourceNotFoundError):
        EventService.delete(db, "missing", "manager-1")


def test_week_events_covers_seven_days(db, make_event):
    inside = make_event(datetime(2025, 8, 31, 21), datetime(2025, 8, 31, 22))
    make_event(datetime(2025, 9, 1, 10), datetime(2025, 9, 1, 11))
    make_event(datetime(2025, 8, 25, 12), datetime(2025, 8, 25, 13), team="bar")

    events = EventService.week_events(db, date(2025, 8, 25), "animation")

    assert [e.id for e in events] == [inside.id]


def test_list_events_filters_and_paginates(db, make_event):
    for hour in (10, 12, 14):
        make_event(datetime(2025, 8, 25, hour), datetime(2025, 8, 25, hour + 1))
    make_event(datetime(2025, 8, 25, 10), datetime(2025, 8, 25, 11), team="bar")

    result = EventService.list_events(db, team="animation", page=1, page_size=2)

    assert result["total"] == 3
    assert result["has_next"] is True
    assert [e.start_time.hour for e in result["events"]] == [10, 12]

    restricted = EventService.list_events(db, teams=["bar"])
    assert restricted["total"] == 1


def test_stats_sums_hours_per_team(db, make_event):
    make_event(datetime(2025, 8, 25, 10), datetime(2025, 8, 25, 11, 30))
    make_event(datetime(2025, 8, 25, 12), datetime(2025, 8, 25, 13))

    stats = EventService.stats(db, ["animation", "bar"])

    assert stats == [{"team": "animation", "total_events": 2, "total_hours": 2.5}]


@pytest.mark.parametrize(
    "start, end, allowed",
    [
        (datetime(2025, 8, 25, 10), datetime(2025, 8, 25, 11), True),
        (datetime(2025, 8, 25, 22), datetime(2025, 8, 25, 23), True),
        (datetime(2025, 8, 25, 9), datetime(2025, 8, 25, 11), False),
        (datetime(2025, 8, 25, 22), datetime(2025, 8, 25, 23, 30), True),
    ],
)
def test_business_hours(start, end, allowed):
    if allowed:
        validate_business_hours(start, end)
    else:
        with pytest.raises(ValidationError):
            validate_business_hours(start, end)


def test_business_hours_can_be_disabled(monkeypatch):
    monkeypatch.setattr(settings, "ENFORCE_BUSINESS_HOURS", False)

    validate_business_hours(datetime(2025, 8, 25, 6), datetime(2025, 8, 25, 7))
