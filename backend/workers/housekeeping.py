"""
Housekeeping Workers — periodic clean-up of time-based state.

  1. Overdue tasks: Pending tasks whose due date has passed become Overdue.

Schedule: See celery_app.py beat_schedule
"""

import asyncio
from datetime import datetime, timezone

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crm.constants import TaskStatus
from crm.derived import to_naive_utc, utcnow
from db.models import Task
from workers.celery_app import celery_app

logger = structlog.get_logger()


async def sweep_overdue_tasks(db: AsyncSession, now: datetime | None = None) -> int:
    """Flip Pending tasks past their due date to Overdue. Returns the row count."""
    now = to_naive_utc(now or utcnow())
    result = await db.execute(
        update(Task)
        .where(Task.status == TaskStatus.PENDING.value, Task.due_date < now)
        .values(status=TaskStatus.OVERDUE.value, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


@celery_app.task(
    name="workers.housekeeping.mark_overdue_tasks",
    bind=True,
    max_retries=2,
    default_retry_delay=60,
    acks_late=True,
)
def mark_overdue_tasks(self):
    """Hourly job: mark overdue follow-ups, deliveries and call backs."""
    run_id = self.request.id or "manual"
    logger.info("housekeeping.overdue_started", run_id=run_id)

    async def _sweep():
        from core.config import get_settings
        from db.session import build_engine

        settings = get_settings()
        engine = build_engine(
            settings.database_url,
            connect_timeout=settings.database_connect_timeout,
            pool_timeout=settings.database_pool_timeout,
        )
        try:
            async_session = async_sessionmaker(engine, class_=AsyncSession)
            async with async_session() as db:
                updated = await sweep_overdue_tasks(db)
        finally:
            await engine.dispose()

        logger.info("housekeeping.overdue_completed", run_id=run_id, updated=updated)
        return {
            "status": "success",
            "updated": updated,
            "completed_at": datetime.now(timezone.utc).isoformat(),
        }

    try:
        return asyncio.run(_sweep())
    except Exception as exc:
        logger.error("housekeeping.overdue_failed", error=str(exc), exc_info=True)
        raise self.retry(exc=exc)
