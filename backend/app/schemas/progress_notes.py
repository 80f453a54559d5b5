from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ProgressNoteCreateRequest(BaseModel):
    student_id: UUID
    note: str = Field(min_length=1, max_length=8000)
    meeting_date: date | None = None


class ProgressNoteUpdateRequest(BaseModel):
    note: str = Field(min_length=1, max_length=8000)


class ProgressNote(BaseModel):
    id: UUID
    student_id: UUID
    author_id: UUID | None = None
    author_name: str | None = None
    note: str
    meeting_date: date | None = None
    created_at: datetime


class ProgressNoteDeleteResponse(BaseModel):
    message: str
    deleted: ProgressNote
