"""Event model and the closed set of teams."""

import enum
import uuid

from sqlalchemy import Column, String, Text, DateTime, JSON, Index

from planner.db.base import Base
from planner.core.timeutils import utcnow


class TeamEnum(str, enum.Enum):
    bar = "bar"
    animation = "animation"
    reception = "reception"


class Event(Base):
    """One scheduled occurrence for one team.

    Overlaps within a team are rejected at write time by the conflict
    detector, not by a database constraint.
    """
    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_team_start_time", "team", "start_time"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    team = Column(String(20), nullable=False)
    animator = Column(String(100), nullable=True)
    color = Column(String(7), nullable=True)
    description = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_by = Column(String(128), nullable=False, index=True)
    last_modified_by = Column(String(128), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    def to_snapshot(self) -> dict:
        """Full row state keyed by column name, JSON-safe."""
        return {
            "id": self.id,
            "title": self.title,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "team": self.team,
            "animator": self.animator,
            "color": self.color,
            "description": self.description,
            "metadata": dict(self.event_metadata or {}),
            "created_by": self.created_by,
            "last_modified_by": self.last_modified_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


def _iso(value):
    return value.isoformat() if value is not None else None
