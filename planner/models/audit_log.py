"""Audit log model — append-only."""

import enum

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index

from planner.db.base import Base
from planner.core.timeutils import utcnow


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditLog(Base):
    """Immutable audit trail for all tracked mutations.

    This table is APPEND-ONLY: rows are written in the same transaction as
    the mutation they document and only removed by the retention sweep.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_table_record", "table_name", "record_id"),
        Index("ix_audit_logs_user_created", "user_uid", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    table_name = Column(String(50), nullable=False)
    record_id = Column(String(100), nullable=False)
    action = Column(String(10), nullable=False, index=True)
    user_uid = Column(String(128), nullable=False)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
