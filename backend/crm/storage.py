"""
Single-row persistence helpers shared by the entity routers.
"""

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crm.errors import ConflictError, NotFoundError

logger = structlog.get_logger()


async def get_or_404(db: AsyncSession, model, record_id: str, label: str):
    record = await db.get(model, record_id)
    if record is None:
        raise NotFoundError(f"{label} not found")
    return record


async def commit_or_conflict(db: AsyncSession, message: str, **context) -> None:
    """Commit, turning constraint violations into a 409 without leaking SQL."""
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("storage.integrity_error", error=str(exc.orig), **context)
        raise ConflictError(message) from exc
