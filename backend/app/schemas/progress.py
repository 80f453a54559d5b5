from datetime import date, datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProgressStatus(StrEnum):
    IMPLEMENTED = "Implemented as Planned"
    PARTIAL = "Partially Implemented"
    NOT_IMPLEMENTED = "Not Implemented"
    STUDENT_ABSENT = "Student Absent"


class ProgressResponseTag(StrEnum):
    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    RESISTANT = "Resistant"


RATING_LABELS: dict[int, str] = {
    1: "No Progress",
    2: "Minimal Progress",
    3: "Some Progress",
    4: "Good Progress",
    5: "Significant Progress",
}


class ProgressOptionsResponse(BaseModel):
    status_options: list[str]
    response_options: list[str]
    rating_scale: dict[int, str]


class ProgressEntryCreateRequest(BaseModel):
    intervention_id: UUID
    student_id: UUID
    week_of: date = Field(description="Any date in the week; stored as that week's Monday")
    status: ProgressStatus
    rating: int | None = Field(default=None, ge=1, le=5)
    response: str | None = Field(default=None, max_length=40)
    notes: str | None = Field(default=None, max_length=4000)


class ProgressEntryUpdateRequest(BaseModel):
    # intervention_id, student_id and week_of are immutable once recorded.
    model_config = ConfigDict(extra="forbid")

    status: ProgressStatus | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    response: str | None = Field(default=None, max_length=40)
    notes: str | None = Field(default=None, max_length=4000)


class ProgressEntry(BaseModel):
    id: UUID
    intervention_id: UUID
    student_id: UUID
    week_of: date
    status: ProgressStatus
    rating: int | None = None
    response: str | None = None
    notes: str | None = None
    logged_by: UUID | None = None
    logged_by_name: str | None = None
    created_at: datetime
    updated_at: datetime


class StudentProgressEntry(ProgressEntry):
    intervention_name: str
    goal_description: str | None = None
    goal_target_date: date | None = None
    goal_target_rating: int | None = None


class ProgressDeleteResponse(BaseModel):
    message: str
    deleted: ProgressEntry


class MissingLogItem(BaseModel):
    intervention_id: UUID
    intervention_name: str
    start_date: date
    student_id: UUID
    first_name: str
    last_name: str
    tier: int | None = None
    area: str | None = None


class MissingLogsResponse(BaseModel):
    week_of: date
    missing_count: int = Field(ge=0)
    interventions: list[MissingLogItem]


class SummaryStudent(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    grade: str | None = None
    tier: int | None = None
    area: str | None = None
    archived: bool = False
    teacher_name: str | None = None
    school_name: str | None = None


class SummaryLogItem(BaseModel):
    week_of: date
    status: ProgressStatus
    rating: int | None = None
    response: str | None = None
    notes: str | None = None
    logged_by_name: str | None = None


class InterventionSummary(BaseModel):
    intervention_id: UUID
    intervention_name: str
    goal_description: str | None = None
    goal_target_date: date | None = None
    goal_target_rating: int | None = None
    start_date: date
    end_date: date | None = None
    status: str
    assigned_by_name: str | None = None
    progress_logs: list[SummaryLogItem]
    avg_rating: float | None = None
    total_logs: int = Field(ge=0)
    implemented_count: int = Field(ge=0)
    absent_count: int = Field(ge=0)
    first_log: date | None = None
    last_log: date | None = None


class SummaryNoteItem(BaseModel):
    id: UUID
    note: str
    meeting_date: date | None = None
    author_name: str | None = None
    created_at: datetime


class DateRange(BaseModel):
    start: date
    end: date


class ProgressSummaryResponse(BaseModel):
    student: SummaryStudent
    date_range: DateRange
    interventions: list[InterventionSummary]
    progress_notes: list[SummaryNoteItem]
    generated_at: datetime
