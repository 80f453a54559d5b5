from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_recording_user
from app.core.security import AuthUser
from app.db.session import get_db_session
from app.schemas.progress import (
    MissingLogsResponse,
    ProgressDeleteResponse,
    ProgressEntry,
    ProgressEntryCreateRequest,
    ProgressEntryUpdateRequest,
    ProgressOptionsResponse,
    ProgressSummaryResponse,
    StudentProgressEntry,
)
from app.services import missing_logs, progress_ledger, progress_summary

router = APIRouter(prefix="/api/v1/weekly-progress", tags=["weekly-progress"])


@router.get("/options", response_model=ProgressOptionsResponse)
def get_progress_options() -> ProgressOptionsResponse:
    return progress_ledger.progress_options()


@router.get("/student/{student_id}", response_model=list[StudentProgressEntry])
async def list_student_progress(
    student_id: UUID,
    intervention_id: UUID | None = Query(default=None),
    start_date: date | None = Query(default=None, description="Earliest week_of, YYYY-MM-DD"),
    end_date: date | None = Query(default=None, description="Latest week_of, YYYY-MM-DD"),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> list[StudentProgressEntry]:
    return await progress_ledger.list_student_progress(
        db,
        student_id,
        intervention_id=intervention_id,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/intervention/{intervention_id}", response_model=list[ProgressEntry])
async def list_intervention_progress(
    intervention_id: UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> list[ProgressEntry]:
    return await progress_ledger.list_intervention_progress(db, intervention_id)


@router.get("/intervention/{intervention_id}/weeks/{week}", response_model=ProgressEntry)
async def get_progress_for_week(
    intervention_id: UUID,
    week: date,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProgressEntry:
    return await progress_ledger.get_progress_for_week(db, intervention_id, week)


@router.get("/missing/{tenant_id}", response_model=MissingLogsResponse)
async def get_missing_logs(
    tenant_id: UUID,
    as_of: date | None = Query(default=None, description="Check the week containing this date"),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MissingLogsResponse:
    return await missing_logs.find_missing_this_week(db, tenant_id, as_of)


@router.get("/summary/{student_id}", response_model=ProgressSummaryResponse)
async def get_progress_summary(
    student_id: UUID,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProgressSummaryResponse:
    return await progress_summary.summarize(db, student_id, start_date, end_date)


@router.post("", response_model=ProgressEntry, status_code=status.HTTP_201_CREATED)
async def record_progress(
    payload: ProgressEntryCreateRequest,
    user: AuthUser = Depends(get_recording_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProgressEntry:
    return await progress_ledger.record_progress(
        db,
        intervention_id=payload.intervention_id,
        student_id=payload.student_id,
        week_of=payload.week_of,
        status=payload.status,
        rating=payload.rating,
        response=payload.response,
        notes=payload.notes,
        logged_by=user.user_id,
    )


@router.patch("/{entry_id}", response_model=ProgressEntry)
async def update_progress(
    entry_id: UUID,
    payload: ProgressEntryUpdateRequest,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProgressEntry:
    return await progress_ledger.update_progress(
        db, entry_id, payload.model_dump(exclude_unset=True)
    )


@router.delete("/{entry_id}", response_model=ProgressDeleteResponse)
async def delete_progress(
    entry_id: UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProgressDeleteResponse:
    deleted = await progress_ledger.delete_progress(db, entry_id)
    return ProgressDeleteResponse(message="progress log deleted", deleted=deleted)
