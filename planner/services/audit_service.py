"""Audit service — append-only audit trail for all mutations."""

import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session
from fastapi import Request

from planner.core.config import settings
from planner.core.timeutils import utcnow, to_naive_utc
from planner.db.session import atomic
from planner.models.audit_log import AuditLog, AuditAction
from planner.models.user import User

logger = logging.getLogger("planner")

_MISSING = object()

EXPORT_COLUMNS = [
    "timestamp",
    "action",
    "table",
    "record_id",
    "user_email",
    "user_name",
    "ip_address",
    "old_values",
    "new_values",
]


@dataclass(frozen=True)
class RequestOrigin:
    """Where a mutation came from (caller address and client agent)."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request) -> "RequestOrigin":
        ip = request.client.host if request.client else None
        ua = request.headers.get("user-agent", "")[:500] or None
        return cls(ip_address=ip, user_agent=ua)


class AuditService:
    """Records immutable audit log entries and reads the history back."""

    @staticmethod
    def record(
        db: Session,
        table_name: str,
        record_id: Any,
        action: AuditAction,
        actor_id: str,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        origin: Optional[RequestOrigin] = None,
    ) -> AuditLog:
        """Append a single audit entry to the caller's transaction.

        Never commits: the entry becomes visible together with the mutation
        it documents, or not at all.
        """
        entry = AuditLog(
            table_name=table_name,
            record_id=str(record_id),
            action=AuditAction(action).value,
            user_uid=actor_id,
            old_values=before,
            new_values=after,
            ip_address=origin.ip_address if origin else None,
            user_agent=origin.user_agent if origin else None,
            created_at=utcnow(),
        )
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def diff(before: Optional[Dict[str, Any]], after: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Field-level changes between two full snapshots.

        Every key of ``after`` is compared with ``before`` by value; keys only
        present in ``before`` are not reported as removed.
        """
        before = before or {}
        changes = []
        for field, new_value in (after or {}).items():
            old_value = before.get(field, _MISSING)
            if old_value is _MISSING or old_value != new_value:
                changes.append({
                    "field": field,
                    "old_value": None if old_value is _MISSING else old_value,
                    "new_value": new_value,
                })
        return changes

    @staticmethod
    def _filtered(
        db: Session,
        table_name: Optional[str] = None,
        record_id: Optional[str] = None,
        user_uid: Optional[str] = None,
        action: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        query = (
            db.query(AuditLog, User.email, User.display_name)
            .outerjoin(User, User.uid == AuditLog.user_uid)
        )
        if table_name:
            query = query.filter(AuditLog.table_name == table_name)
        if record_id:
            query = query.filter(AuditLog.record_id == str(record_id))
        if user_uid:
            query = query.filter(AuditLog.user_uid == user_uid)
        if action:
            query = query.filter(AuditLog.action == AuditAction(action).value)
        if start_date:
            query = query.filter(AuditLog.created_at >= to_naive_utc(start_date))
        if end_date:
            query = query.filter(AuditLog.created_at <= to_naive_utc(end_date))
        return query

    @staticmethod
    def _as_dict(row) -> Dict[str, Any]:
        log, email, name = row
        return {
            "id": log.id,
            "table_name": log.table_name,
            "record_id": log.record_id,
            "action": log.action,
            "user_uid": log.user_uid,
            "user_email": email,
            "user_name": name,
            "old_values": log.old_values,
            "new_values": log.new_values,
            "ip_address": log.ip_address,
            "user_agent": log.user_agent,
            "created_at": log.created_at,
        }

    @staticmethod
    def query_logs(
        db: Session,
        table_name: Optional[str] = None,
        record_id: Optional[str] = None,
        user_uid: Optional[str] = None,
        action: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        """Query audit logs with filters and pagination, newest first."""
        query = AuditService._filtered(
            db, table_name, record_id, user_uid, action, start_date, end_date,
        )

        total = query.count()
        rows = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        return {
            "logs": [AuditService._as_dict(r) for r in rows],
            "total": total,
            "page": page,
            "page_size": page_size,
            "has_next": page * page_size < total,
        }

    @staticmethod
    def history(db: Session, table_name: str, record_id: str) -> List[Dict[str, Any]]:
        """Full history of one record, oldest first, with diffs on updates."""
        rows = (
            AuditService._filtered(db, table_name=table_name, record_id=record_id)
            .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
            .all()
        )
        entries = []
        for row in rows:
            entry = AuditService._as_dict(row)
            if entry["action"] == AuditAction.UPDATE.value and entry["old_values"] and entry["new_values"]:
                entry["changes"] = AuditService.diff(entry["old_values"], entry["new_values"])
            entries.append(entry)
        return entries

    @staticmethod
    def cleanup(db: Session, max_age_days: int) -> int:
        """Retention sweep: delete entries older than ``max_age_days``.

        This is the only deletion path for audit rows.
        """
        cutoff = utcnow() - timedelta(days=max_age_days)
        with atomic(db):
            deleted = (
                db.query(AuditLog)
                .filter(AuditLog.created_at < cutoff)
                .delete(synchronize_session=False)
            )
        logger.info("Audit cleanup: %s entries removed (older than %s days)", deleted, max_age_days)
        return deleted

    @staticmethod
    def export_csv(db: Session, **filters) -> str:
        """Serialize the filtered log set as CSV, newest first."""
        rows = (
            AuditService._filtered(db, **filters)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(settings.AUDIT_EXPORT_LIMIT)
            .all()
        )

        buf = io.StringIO()
        writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(EXPORT_COLUMNS)
        for row in rows:
            log = AuditService._as_dict(row)
            writer.writerow([
                log["created_at"].isoformat() if log["created_at"] else "",
                log["action"],
                log["table_name"],
                log["record_id"],
                log["user_email"] or "",
                log["user_name"] or "",
                log["ip_address"] or "",
                json.dumps(log["old_values"]) if log["old_values"] is not None else "",
                json.dumps(log["new_values"]) if log["new_values"] is not None else "",
            ])
        return buf.getvalue()

    @staticmethod
    def stats(
        db: Session,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        table_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Activity breakdown by action, table, actor and day."""
        base = db.query(AuditLog)
        if start_date:
            base = base.filter(AuditLog.created_at >= to_naive_utc(start_date))
        if end_date:
            base = base.filter(AuditLog.created_at <= to_naive_utc(end_date))
        if table_name:
            base = base.filter(AuditLog.table_name == table_name)

        by_action = (
            base.with_entities(AuditLog.action, func.count(AuditLog.id))
            .group_by(AuditLog.action)
            .all()
        )
        by_table = (
            base.with_entities(AuditLog.table_name, func.count(AuditLog.id))
            .group_by(AuditLog.table_name)
            .all()
        )
        count = func.count(AuditLog.id).label("count")
        top_users = (
            base.with_entities(AuditLog.user_uid, User.email, User.display_name, count)
            .outerjoin(User, User.uid == AuditLog.user_uid)
            .group_by(AuditLog.user_uid, User.email, User.display_name)
            .order_by(count.desc())
            .limit(10)
            .all()
        )
        day = func.date(AuditLog.created_at).label("day")
        daily = (
            db.query(day, func.count(AuditLog.id))
            .filter(AuditLog.created_at >= utcnow() - timedelta(days=7))
            .group_by(day)
            .order_by(day.desc())
            .all()
        )

        return {
            "by_action": [{"action": a, "count": c} for a, c in by_action],
            "by_table": [{"table": t, "count": c} for t, c in by_table],
            "top_users": [
                {"uid": uid, "email": email, "name": name, "count": c}
                for uid, email, name, c in top_users
            ],
            "daily_activity": [{"date": str(d), "count": c} for d, c in daily],
        }


audit_service = AuditService()
