from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_recording_user
from app.core.security import AuthUser
from app.db.session import get_db_session
from app.schemas.progress_notes import (
    ProgressNote,
    ProgressNoteCreateRequest,
    ProgressNoteDeleteResponse,
    ProgressNoteUpdateRequest,
)
from app.services import progress_notes

router = APIRouter(prefix="/api/v1/progress-notes", tags=["progress-notes"])


@router.get("/student/{student_id}", response_model=list[ProgressNote])
async def list_student_notes(
    student_id: UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> list[ProgressNote]:
    return await progress_notes.list_notes(db, student_id)


@router.post("", response_model=ProgressNote, status_code=status.HTTP_201_CREATED)
async def create_note(
    payload: ProgressNoteCreateRequest,
    user: AuthUser = Depends(get_recording_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProgressNote:
    return await progress_notes.create_note(
        db,
        student_id=payload.student_id,
        author_id=user.user_id,
        note=payload.note,
        meeting_date=payload.meeting_date,
    )


@router.patch("/{note_id}", response_model=ProgressNote)
async def update_note(
    note_id: UUID,
    payload: ProgressNoteUpdateRequest,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProgressNote:
    return await progress_notes.update_note(db, note_id, payload.note)


@router.delete("/{note_id}", response_model=ProgressNoteDeleteResponse)
async def delete_note(
    note_id: UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProgressNoteDeleteResponse:
    deleted = await progress_notes.delete_note(db, note_id)
    return ProgressNoteDeleteResponse(message="progress note deleted", deleted=deleted)
