"""Models package — import all models so create_all can discover them."""

from planner.models.user import User, RoleEnum
from planner.models.event import Event, TeamEnum
from planner.models.audit_log import AuditLog, AuditAction
from planner.models.planning_template import PlanningTemplate

__all__ = [
    "User", "RoleEnum",
    "Event", "TeamEnum",
    "AuditLog", "AuditAction",
    "PlanningTemplate",
]
