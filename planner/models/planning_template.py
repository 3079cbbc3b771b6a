"""Planning template model."""

import uuid

from sqlalchemy import Column, String, Text, Boolean, DateTime, JSON

from planner.db.base import Base
from planner.core.timeutils import utcnow


class PlanningTemplate(Base):
    """Reusable team-scoped week layout (list of relative event definitions as JSON)."""
    __tablename__ = "planning_templates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    team = Column(String(20), nullable=False, index=True)
    template_events = Column(JSON, nullable=False)
    created_by = Column(String(128), nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_snapshot(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "team": self.team,
            "template_events": list(self.template_events or []),
            "created_by": self.created_by,
            "active": self.active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
