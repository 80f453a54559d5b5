"""Weekly progress ledger: one row per (intervention, week).

Every write normalizes its date to the Monday of the week, and recording is a
single `INSERT ... ON CONFLICT` on `(student_intervention_id, week_of)`, so two
concurrent submissions for the same week leave exactly one row behind.
"""

import logging
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, ValidationError
from app.db.utils import get_intervention, storage_guard
from app.schemas.progress import (
    RATING_LABELS,
    ProgressEntry,
    ProgressOptionsResponse,
    ProgressResponseTag,
    ProgressStatus,
    StudentProgressEntry,
)
from app.services.weeks import week_of as normalize_week

logger = logging.getLogger("mtss.progress")

UPDATABLE_FIELDS = ("status", "rating", "response", "notes")

_RETURNING_COLUMNS = """
    id,
    student_intervention_id AS intervention_id,
    student_id,
    week_of,
    status,
    rating,
    response,
    notes,
    logged_by,
    created_at,
    updated_at
"""

_SELECT_COLUMNS = """
    wp.id,
    wp.student_intervention_id AS intervention_id,
    wp.student_id,
    wp.week_of,
    wp.status,
    wp.rating,
    wp.response,
    wp.notes,
    wp.logged_by,
    u.full_name AS logged_by_name,
    wp.created_at,
    wp.updated_at
"""


def progress_options() -> ProgressOptionsResponse:
    return ProgressOptionsResponse(
        status_options=[item.value for item in ProgressStatus],
        response_options=[item.value for item in ProgressResponseTag],
        rating_scale=dict(RATING_LABELS),
    )


def _coerce_status(value: Any) -> ProgressStatus:
    if value is None or value == "":
        raise ValidationError("status is required", field="status")
    try:
        return ProgressStatus(value)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in ProgressStatus)
        raise ValidationError(
            f"status must be one of: {allowed}", field="status"
        ) from exc


def _coerce_rating(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("rating must be an integer from 1 to 5", field="rating")
    if value not in RATING_LABELS:
        raise ValidationError("rating must be an integer from 1 to 5", field="rating")
    return value


def _check_absent_rating(status: ProgressStatus, rating: int | None) -> None:
    if status == ProgressStatus.STUDENT_ABSENT and rating is not None:
        raise ValidationError(
            "rating must be empty when status is Student Absent", field="rating"
        )


def _entry(row) -> ProgressEntry:
    return ProgressEntry.model_validate(dict(row))


async def record_progress(
    db: AsyncSession,
    *,
    intervention_id: UUID | None,
    student_id: UUID | None,
    week_of: date | str | None,
    status: ProgressStatus | str | None,
    rating: int | None = None,
    response: str | None = None,
    notes: str | None = None,
    logged_by: UUID | None = None,
) -> ProgressEntry:
    """Insert or overwrite the entry for the intervention's week."""
    for field, value in (
        ("intervention_id", intervention_id),
        ("student_id", student_id),
        ("week_of", week_of),
    ):
        if value is None or value == "":
            raise ValidationError(f"{field} is required", field=field)
    normalized_status = _coerce_status(status)
    normalized_rating = _coerce_rating(rating)
    _check_absent_rating(normalized_status, normalized_rating)
    normalized_week = normalize_week(week_of)

    async with storage_guard(db, "record_progress"):
        intervention = await get_intervention(db, intervention_id)
        if not intervention:
            raise NotFoundError("intervention not found")
        if str(intervention["student_id"]) != str(student_id):
            raise ValidationError(
                "student_id does not match the intervention's student",
                field="student_id",
            )

        result = await db.execute(
            text(
                f"""
                INSERT INTO weekly_progress (
                  student_intervention_id,
                  student_id,
                  week_of,
                  status,
                  rating,
                  response,
                  notes,
                  logged_by
                )
                VALUES (
                  :intervention_id,
                  :student_id,
                  :week_of,
                  :status,
                  :rating,
                  :response,
                  :notes,
                  :logged_by
                )
                ON CONFLICT (student_intervention_id, week_of)
                DO UPDATE SET
                  status = EXCLUDED.status,
                  rating = EXCLUDED.rating,
                  response = EXCLUDED.response,
                  notes = EXCLUDED.notes,
                  logged_by = EXCLUDED.logged_by,
                  updated_at = NOW()
                RETURNING {_RETURNING_COLUMNS}
                """
            ),
            {
                "intervention_id": str(intervention_id),
                "student_id": str(student_id),
                "week_of": normalized_week,
                "status": normalized_status.value,
                "rating": normalized_rating,
                "response": response,
                "notes": notes,
                "logged_by": str(logged_by) if logged_by else None,
            },
        )
        row = result.mappings().one()
        await db.commit()

    logger.info(
        "recorded weekly progress intervention=%s week_of=%s status=%s",
        intervention_id,
        normalized_week.isoformat(),
        normalized_status.value,
    )
    return _entry(row)


async def update_progress(
    db: AsyncSession, entry_id: UUID, changes: dict[str, Any]
) -> ProgressEntry:
    """Apply a partial update; fields not present in `changes` are kept."""
    for field in changes:
        if field not in UPDATABLE_FIELDS:
            raise ValidationError(f"{field} cannot be updated", field=field)

    async with storage_guard(db, "update_progress"):
        existing_result = await db.execute(
            text(
                f"""
                SELECT {_RETURNING_COLUMNS}
                FROM weekly_progress
                WHERE id = :entry_id
                LIMIT 1
                """
            ),
            {"entry_id": str(entry_id)},
        )
        existing = existing_result.mappings().first()
        if not existing:
            raise NotFoundError("progress log not found")

        params: dict[str, Any] = {"entry_id": str(entry_id)}
        if "status" in changes:
            params["status"] = _coerce_status(changes["status"]).value
        if "rating" in changes:
            params["rating"] = _coerce_rating(changes["rating"])
        for field in ("response", "notes"):
            if field in changes:
                params[field] = changes[field]

        merged_status = ProgressStatus(params.get("status", existing["status"]))
        merged_rating = params["rating"] if "rating" in params else existing["rating"]
        _check_absent_rating(merged_status, merged_rating)

        assignments = [f"{field} = :{field}" for field in UPDATABLE_FIELDS if field in params]
        assignments.append("updated_at = NOW()")
        result = await db.execute(
            text(
                f"""
                UPDATE weekly_progress
                SET {", ".join(assignments)}
                WHERE id = :entry_id
                RETURNING {_RETURNING_COLUMNS}
                """
            ),
            params,
        )
        row = result.mappings().first()
        if not row:
            raise NotFoundError("progress log not found")
        await db.commit()

    return _entry(row)


async def delete_progress(db: AsyncSession, entry_id: UUID) -> ProgressEntry:
    async with storage_guard(db, "delete_progress"):
        result = await db.execute(
            text(
                f"""
                DELETE FROM weekly_progress
                WHERE id = :entry_id
                RETURNING {_RETURNING_COLUMNS}
                """
            ),
            {"entry_id": str(entry_id)},
        )
        row = result.mappings().first()
        if not row:
            raise NotFoundError("progress log not found")
        await db.commit()

    logger.info("deleted weekly progress entry=%s", entry_id)
    return _entry(row)


async def get_progress_for_week(
    db: AsyncSession, intervention_id: UUID, week: date | str
) -> ProgressEntry:
    normalized_week = normalize_week(week)
    async with storage_guard(db, "get_progress_for_week"):
        result = await db.execute(
            text(
                f"""
                SELECT {_SELECT_COLUMNS}
                FROM weekly_progress wp
                LEFT JOIN users u ON wp.logged_by = u.id
                WHERE wp.student_intervention_id = :intervention_id
                  AND wp.week_of = :week_of
                LIMIT 1
                """
            ),
            {"intervention_id": str(intervention_id), "week_of": normalized_week},
        )
        row = result.mappings().first()
    if not row:
        raise NotFoundError(f"no progress log for week of {normalized_week.isoformat()}")
    return _entry(row)


async def list_intervention_progress(
    db: AsyncSession, intervention_id: UUID
) -> list[ProgressEntry]:
    async with storage_guard(db, "list_intervention_progress"):
        result = await db.execute(
            text(
                f"""
                SELECT {_SELECT_COLUMNS}
                FROM weekly_progress wp
                LEFT JOIN users u ON wp.logged_by = u.id
                WHERE wp.student_intervention_id = :intervention_id
                ORDER BY wp.week_of DESC
                """
            ),
            {"intervention_id": str(intervention_id)},
        )
        rows = result.mappings().all()
    return [_entry(row) for row in rows]


async def list_student_progress(
    db: AsyncSession,
    student_id: UUID,
    *,
    intervention_id: UUID | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[StudentProgressEntry]:
    conditions = ["wp.student_id = :student_id"]
    params: dict[str, Any] = {"student_id": str(student_id)}
    if intervention_id:
        conditions.append("wp.student_intervention_id = :intervention_id")
        params["intervention_id"] = str(intervention_id)
    if start_date:
        conditions.append("wp.week_of >= :start_date")
        params["start_date"] = start_date
    if end_date:
        conditions.append("wp.week_of <= :end_date")
        params["end_date"] = end_date

    async with storage_guard(db, "list_student_progress"):
        result = await db.execute(
            text(
                f"""
                SELECT
                  {_SELECT_COLUMNS},
                  si.intervention_name,
                  si.goal_description,
                  si.goal_target_date,
                  si.goal_target_rating
                FROM weekly_progress wp
                JOIN student_interventions si ON wp.student_intervention_id = si.id
                LEFT JOIN users u ON wp.logged_by = u.id
                WHERE {" AND ".join(conditions)}
                ORDER BY wp.week_of DESC, si.intervention_name
                """
            ),
            params,
        )
        rows = result.mappings().all()
    return [StudentProgressEntry.model_validate(dict(row)) for row in rows]
