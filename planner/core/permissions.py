"""Capability checks for planning operations.

Every route resolves its required capability once through :func:`check`
instead of re-deriving role and team rules inline.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, List, Optional

from planner.core.exceptions import AuthorizationError
from planner.models.event import TeamEnum
from planner.models.user import RoleEnum


class Capability(str, enum.Enum):
    READ_TEAM = "read_team"        # see a team's planning
    WRITE_TEAM = "write_team"      # create/derive events for a team
    MODIFY_EVENT = "modify_event"  # update or delete one event
    ADMIN = "admin"                # audit review and retention


@dataclass(frozen=True)
class Actor:
    """Verified caller identity handed over by the identity provider."""

    uid: str
    role: str
    teams: List[str] = field(default_factory=list)
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.admin.value

    def belongs_to(self, team: str) -> bool:
        return self.is_admin or team in self.teams


def accessible_teams(actor: Actor) -> List[str]:
    """Teams whose planning the actor may read."""
    if actor.is_admin:
        return [t.value for t in TeamEnum]
    return [t for t in actor.teams if t in TeamEnum._value2member_map_]


def can(actor: Actor, capability: Capability, *, team: Optional[str] = None, event: Any = None) -> bool:
    if capability == Capability.ADMIN:
        return actor.is_admin

    if capability == Capability.READ_TEAM:
        return team is not None and actor.belongs_to(team)

    if capability == Capability.WRITE_TEAM:
        if actor.role not in (RoleEnum.admin.value, RoleEnum.manager.value):
            return False
        return team is not None and actor.belongs_to(team)

    if capability == Capability.MODIFY_EVENT:
        if event is None:
            return False
        if actor.is_admin:
            return True
        if actor.role == RoleEnum.manager.value and event.team in actor.teams:
            return True
        return event.created_by == actor.uid

    return False


def check(actor: Actor, capability: Capability, *, team: Optional[str] = None, event: Any = None) -> None:
    """Raise :class:`AuthorizationError` unless ``actor`` holds ``capability``."""
    if can(actor, capability, team=team, event=event):
        return
    if capability == Capability.ADMIN:
        raise AuthorizationError("Administrator role required")
    if capability == Capability.MODIFY_EVENT:
        raise AuthorizationError("You cannot modify this event")
    if capability == Capability.WRITE_TEAM and actor.role == RoleEnum.staff.value:
        raise AuthorizationError(f"Role '{actor.role}' cannot write planning")
    raise AuthorizationError(f"No access to team '{team}'")
