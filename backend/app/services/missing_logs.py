from datetime import date
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.utils import storage_guard
from app.schemas.progress import MissingLogItem, MissingLogsResponse
from app.services.weeks import school_today, week_of


async def find_missing_this_week(
    db: AsyncSession, tenant_id: UUID, as_of: date | str | None = None
) -> MissingLogsResponse:
    """Active, already-started interventions with no entry for the current week.

    Any recorded entry counts, including `Student Absent`.
    """
    current_week = week_of(as_of if as_of is not None else school_today())

    async with storage_guard(db, "find_missing_this_week"):
        result = await db.execute(
            text(
                """
                SELECT
                  si.id AS intervention_id,
                  si.intervention_name,
                  si.start_date,
                  s.id AS student_id,
                  s.first_name,
                  s.last_name,
                  s.tier,
                  s.area
                FROM student_interventions si
                JOIN students s ON si.student_id = s.id
                WHERE s.tenant_id = :tenant_id
                  AND s.archived = FALSE
                  AND si.status = 'active'
                  AND si.start_date <= :week_of
                  AND NOT EXISTS (
                    SELECT 1
                    FROM weekly_progress wp
                    WHERE wp.student_intervention_id = si.id
                      AND wp.week_of = :week_of
                  )
                ORDER BY s.last_name, s.first_name, si.intervention_name, si.id
                """
            ),
            {"tenant_id": str(tenant_id), "week_of": current_week},
        )
        rows = result.mappings().all()

    items = [MissingLogItem.model_validate(dict(row)) for row in rows]
    return MissingLogsResponse(
        week_of=current_week,
        missing_count=len(items),
        interventions=items,
    )
