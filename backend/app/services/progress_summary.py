"""Progress report aggregation for one student over a date window.

The summary either comes back complete or not at all: a failure in any of its
queries surfaces as a StorageError for the whole report.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import NotFoundError, ValidationError
from app.db.utils import get_student, storage_guard
from app.schemas.progress import (
    DateRange,
    InterventionSummary,
    ProgressStatus,
    ProgressSummaryResponse,
    SummaryLogItem,
    SummaryNoteItem,
    SummaryStudent,
)
from app.services.weeks import school_today

DEFAULT_SUMMARY_WINDOW_DAYS = 56
_TWO_PLACES = Decimal("0.01")


def average_rating(ratings: Iterable[int | None]) -> float | None:
    present = [rating for rating in ratings if rating is not None]
    if not present:
        return None
    mean = Decimal(sum(present)) / Decimal(len(present))
    return float(mean.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def aggregate_logs(logs: list[SummaryLogItem]) -> dict:
    weeks = [log.week_of for log in logs]
    return {
        "avg_rating": average_rating(log.rating for log in logs),
        "total_logs": len(logs),
        "implemented_count": sum(
            1 for log in logs if log.status == ProgressStatus.IMPLEMENTED
        ),
        "absent_count": sum(
            1 for log in logs if log.status == ProgressStatus.STUDENT_ABSENT
        ),
        "first_log": min(weeks) if weeks else None,
        "last_log": max(weeks) if weeks else None,
    }


def _school_midnight(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=settings.school_zone)


def resolve_window(
    start_date: date | None, end_date: date | None
) -> tuple[date, date]:
    end = end_date or school_today()
    start = start_date or end - timedelta(days=DEFAULT_SUMMARY_WINDOW_DAYS)
    if start > end:
        raise ValidationError("start_date must be on or before end_date", field="start_date")
    return start, end


async def summarize(
    db: AsyncSession,
    student_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
) -> ProgressSummaryResponse:
    start, end = resolve_window(start_date, end_date)
    window = {"student_id": str(student_id), "start_date": start, "end_date": end}

    async with storage_guard(db, "summarize_progress"):
        student = await get_student(db, student_id)
        if not student:
            raise NotFoundError("student not found")

        interventions_result = await db.execute(
            text(
                """
                SELECT
                  si.id AS intervention_id,
                  si.intervention_name,
                  si.goal_description,
                  si.goal_target_date,
                  si.goal_target_rating,
                  si.start_date,
                  si.end_date,
                  si.status,
                  u.full_name AS assigned_by_name
                FROM student_interventions si
                LEFT JOIN users u ON si.assigned_by = u.id
                WHERE si.student_id = :student_id
                  AND (si.status = 'active' OR si.end_date >= :start_date)
                ORDER BY si.start_date, si.id
                """
            ),
            {"student_id": window["student_id"], "start_date": start},
        )
        interventions = interventions_result.mappings().all()

        logs_result = await db.execute(
            text(
                """
                SELECT
                  wp.student_intervention_id AS intervention_id,
                  wp.week_of,
                  wp.status,
                  wp.rating,
                  wp.response,
                  wp.notes,
                  lu.full_name AS logged_by_name
                FROM weekly_progress wp
                JOIN student_interventions si ON si.id = wp.student_intervention_id
                LEFT JOIN users lu ON wp.logged_by = lu.id
                WHERE si.student_id = :student_id
                  AND wp.week_of BETWEEN :start_date AND :end_date
                ORDER BY wp.week_of
                """
            ),
            window,
        )
        log_rows = logs_result.mappings().all()

        notes_result = await db.execute(
            text(
                """
                SELECT pn.id, pn.note, pn.meeting_date, pn.created_at, u.full_name AS author_name
                FROM progress_notes pn
                LEFT JOIN users u ON pn.author_id = u.id
                WHERE pn.student_id = :student_id
                  AND pn.created_at >= :window_start
                  AND pn.created_at < :window_end
                ORDER BY pn.created_at DESC
                """
            ),
            {
                "student_id": window["student_id"],
                "window_start": _school_midnight(start),
                "window_end": _school_midnight(end + timedelta(days=1)),
            },
        )
        note_rows = notes_result.mappings().all()

    logs_by_intervention: dict[str, list[SummaryLogItem]] = defaultdict(list)
    for row in log_rows:
        payload = dict(row)
        key = str(payload.pop("intervention_id"))
        logs_by_intervention[key].append(SummaryLogItem.model_validate(payload))

    summaries = []
    for row in interventions:
        logs = logs_by_intervention.get(str(row["intervention_id"]), [])
        summaries.append(
            InterventionSummary(
                **dict(row),
                progress_logs=logs,
                **aggregate_logs(logs),
            )
        )

    return ProgressSummaryResponse(
        student=SummaryStudent.model_validate(dict(student)),
        date_range=DateRange(start=start, end=end),
        interventions=summaries,
        progress_notes=[SummaryNoteItem.model_validate(dict(row)) for row in note_rows],
        generated_at=datetime.now(timezone.utc),
    )
