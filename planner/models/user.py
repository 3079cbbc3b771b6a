"""User model."""

import enum

from sqlalchemy import Column, String, Boolean, DateTime, JSON

from planner.db.base import Base
from planner.core.timeutils import utcnow


class RoleEnum(str, enum.Enum):
    admin = "admin"
    manager = "manager"
    staff = "staff"


class User(Base):
    """Directory entry for an identity-provider user (used to label audit rows)."""
    __tablename__ = "users"

    uid = Column(String(128), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=RoleEnum.staff.value)
    teams = Column(JSON, nullable=False, default=list)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
