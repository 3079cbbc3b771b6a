"""Pydantic schemas for API request/response serialization."""

from datetime import date, datetime
from typing import Optional, List, Dict, Any

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from planner.core.timeutils import to_naive_utc
from planner.models.audit_log import AuditAction
from planner.models.event import TeamEnum

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


# ---- Event ----
class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    start_time: datetime
    end_time: datetime
    team: TeamEnum
    animator: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    description: Optional[str] = Field(None, max_length=1000)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("start_time", "end_time")
    @classmethod
    def _naive_utc(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("animator", "color", "description", mode="before")
    @classmethod
    def _blank_as_none(cls, value):
        return value or None

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class EventCreate(EventBase):
    pass


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    team: Optional[TeamEnum] = None
    animator: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    description: Optional[str] = Field(None, max_length=1000)
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value) if value is not None else None


class EventOut(BaseModel):
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    team: str
    animator: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("event_metadata", "metadata"),
    )
    created_by: str
    last_modified_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EventListResponse(BaseModel):
    events: List[EventOut]
    total: int
    page: int
    page_size: int
    has_next: bool


class ConflictCheckRequest(BaseModel):
    start_time: datetime
    end_time: datetime
    team: TeamEnum
    exclude_event_id: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _naive_utc(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class ConflictOut(BaseModel):
    id: str
    title: str
    start: datetime
    end: datetime


class ConflictCheckResponse(BaseModel):
    has_conflicts: bool
    conflicts: List[ConflictOut]


# ---- Planning ----
class DuplicateWeekRequest(BaseModel):
    source_week: date
    target_week: date
    team: TeamEnum
    overwrite: bool = False


class DuplicateWeekResponse(BaseModel):
    duplicated_count: int
    events: List[EventOut]
    source_week: date
    target_week: date
    team: str
    overwrite: bool


class TemplateEventDefinition(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    day_offset: int = Field(0, ge=0, le=6)
    start_hour: int = Field(..., ge=0, le=23)
    start_minute: int = Field(0, ge=0, le=59)
    end_hour: int = Field(..., ge=0, le=23)
    end_minute: int = Field(0, ge=0, le=59)
    animator: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    description: Optional[str] = Field(None, max_length=1000)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _end_after_start(self):
        if (self.end_hour, self.end_minute) <= (self.start_hour, self.start_minute):
            raise ValueError("end time must be after start time within the day")
        return self


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    team: TeamEnum
    template_events: List[TemplateEventDefinition] = Field(..., min_length=1)


class TemplateOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    team: str
    template_events: List[Dict[str, Any]]
    created_by: str
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApplyTemplateRequest(BaseModel):
    target_week: date
    overwrite: bool = False


class ApplyTemplateResponse(BaseModel):
    template_name: str
    created_count: int
    events: List[EventOut]
    target_week: date
    overwrite: bool


class BulkCreateRequest(BaseModel):
    events: List[EventCreate] = Field(..., min_length=1)


class BulkCreateError(BaseModel):
    index: int
    error: str


class BulkCreateResponse(BaseModel):
    created_count: int
    error_count: int
    created_events: List[EventOut]
    errors: List[BulkCreateError]


# ---- Audit ----
class FieldChange(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class AuditLogOut(BaseModel):
    id: int
    table_name: str
    record_id: str
    action: AuditAction
    user_uid: str
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    changes: Optional[List[FieldChange]] = None


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogOut]
    total: int
    page: int
    page_size: int
    has_next: bool


class CleanupRequest(BaseModel):
    max_age_days: int = Field(90, ge=1)


class CleanupResponse(BaseModel):
    deleted_count: int
    max_age_days: int


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
    detail: Optional[Any] = None
