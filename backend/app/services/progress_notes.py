from datetime import date
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.db.utils import get_student, storage_guard
from app.schemas.progress_notes import ProgressNote
from app.services.weeks import school_today

_NOTE_COLUMNS = "id, student_id, author_id, note, meeting_date, created_at"


async def list_notes(db: AsyncSession, student_id: UUID) -> list[ProgressNote]:
    async with storage_guard(db, "list_progress_notes"):
        result = await db.execute(
            text(
                """
                SELECT pn.id, pn.student_id, pn.author_id, pn.note, pn.meeting_date,
                       pn.created_at, u.full_name AS author_name
                FROM progress_notes pn
                LEFT JOIN users u ON pn.author_id = u.id
                WHERE pn.student_id = :student_id
                ORDER BY pn.created_at DESC
                """
            ),
            {"student_id": str(student_id)},
        )
        rows = result.mappings().all()
    return [ProgressNote.model_validate(dict(row)) for row in rows]


async def create_note(
    db: AsyncSession,
    *,
    student_id: UUID,
    author_id: UUID | None,
    note: str,
    meeting_date: date | None = None,
) -> ProgressNote:
    async with storage_guard(db, "create_progress_note"):
        if not await get_student(db, student_id):
            raise NotFoundError("student not found")

        result = await db.execute(
            text(
                f"""
                INSERT INTO progress_notes (student_id, author_id, note, meeting_date)
                VALUES (:student_id, :author_id, :note, :meeting_date)
                RETURNING {_NOTE_COLUMNS}
                """
            ),
            {
                "student_id": str(student_id),
                "author_id": str(author_id) if author_id else None,
                "note": note,
                "meeting_date": meeting_date or school_today(),
            },
        )
        row = result.mappings().one()
        await db.execute(
            text("UPDATE students SET updated_at = NOW() WHERE id = :student_id"),
            {"student_id": str(student_id)},
        )
        await db.commit()
    return ProgressNote.model_validate(dict(row))


async def update_note(db: AsyncSession, note_id: UUID, note: str) -> ProgressNote:
    async with storage_guard(db, "update_progress_note"):
        result = await db.execute(
            text(
                f"""
                UPDATE progress_notes
                SET note = :note
                WHERE id = :note_id
                RETURNING {_NOTE_COLUMNS}
                """
            ),
            {"note_id": str(note_id), "note": note},
        )
        row = result.mappings().first()
        if not row:
            raise NotFoundError("progress note not found")
        await db.commit()
    return ProgressNote.model_validate(dict(row))


async def delete_note(db: AsyncSession, note_id: UUID) -> ProgressNote:
    async with storage_guard(db, "delete_progress_note"):
        result = await db.execute(
            text(
                f"""
                DELETE FROM progress_notes
                WHERE id = :note_id
                RETURNING {_NOTE_COLUMNS}
                """
            ),
            {"note_id": str(note_id)},
        )
        row = result.mappings().first()
        if not row:
            raise NotFoundError("progress note not found")
        await db.commit()
    return ProgressNote.model_validate(dict(row))
