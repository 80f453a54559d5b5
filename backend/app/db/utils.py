import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StorageError
from app.core.observability import observability_registry
from app.core.security import AuthUser

logger = logging.getLogger("mtss.storage")


@asynccontextmanager
async def storage_guard(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Roll back and re-raise database failures as StorageError.

    Domain errors raised inside the block pass through untouched.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        try:
            await db.rollback()
        except SQLAlchemyError:
            logger.warning("rollback failed after %s error", operation)
        observability_registry.record_storage_failure(operation)
        logger.exception("storage failure during %s", operation)
        raise StorageError(f"{operation.replace('_', ' ')} failed") from exc


async def ensure_user_exists(db: AsyncSession, user: AuthUser) -> None:
    await db.execute(
        text(
            """
            INSERT INTO users (id, tenant_id, email, full_name, role)
            VALUES (:user_id, :tenant_id, :email, :full_name, :role)
            ON CONFLICT (id) DO NOTHING
            """
        ),
        {
            "user_id": str(user.user_id),
            "tenant_id": str(user.tenant_id) if user.tenant_id else None,
            "email": user.email or f"{user.user_id}@mock.local",
            "full_name": user.display_name or "Unknown User",
            "role": user.role,
        },
    )


async def get_student(db: AsyncSession, student_id: UUID):
    result = await db.execute(
        text(
            """
            SELECT
              s.id,
              s.tenant_id,
              s.first_name,
              s.last_name,
              s.grade,
              s.tier,
              s.area,
              s.archived,
              u.full_name AS teacher_name,
              t.name AS school_name
            FROM students s
            LEFT JOIN users u ON s.teacher_id = u.id
            LEFT JOIN tenants t ON s.tenant_id = t.id
            WHERE s.id = :student_id
            LIMIT 1
            """
        ),
        {"student_id": str(student_id)},
    )
    return result.mappings().first()


async def get_intervention(db: AsyncSession, intervention_id: UUID):
    result = await db.execute(
        text(
            """
            SELECT id, student_id, intervention_name, start_date, end_date, status
            FROM student_interventions
            WHERE id = :intervention_id
            LIMIT 1
            """
        ),
        {"intervention_id": str(intervention_id)},
    )
    return result.mappings().first()
