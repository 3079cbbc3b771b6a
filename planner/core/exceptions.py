"""Custom exception classes for the planning backend."""

from typing import Any, Dict, List

from fastapi import HTTPException, status


class PlanningError(Exception):
    """Base exception for the planning backend."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthorizationError(PlanningError):
    """Raised when the actor lacks the capability for an operation."""
    pass


class ResourceNotFoundError(PlanningError):
    """Raised when a requested event, template or record is not found."""
    pass


class ValidationError(PlanningError):
    """Raised when a business rule on the input fails."""
    pass


class EventConflictError(PlanningError):
    """Raised when a requested interval overlaps existing events of the team.

    ``conflicts`` holds ``{id, title, start, end}`` summaries of the overlapping
    events so callers can resolve manually.
    """

    def __init__(self, conflicts: List[Dict[str, Any]], message: str = "An event already exists in this time slot"):
        self.conflicts = list(conflicts)
        super().__init__(message)


class EmptySourceWeekError(PlanningError):
    """Raised when a week duplication finds no events in the source week."""
    pass


class TransactionFailureError(PlanningError):
    """Raised when the storage layer fails during a unit of work (already rolled back)."""
    pass


# HTTP exception shortcuts
def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
