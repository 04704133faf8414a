"""
Remark Logs Router — append-only remark trail keyed by (entityType, entityId).

Remarks are never updated or deleted.
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.v1.routers.shift_notes import actor_display_name
from api.v1.schemas import CamelModel
from core.security import Actor
from crm.constants import RemarkEntity
from crm.identifiers import add_with_identifier
from crm.storage import commit_or_conflict, get_or_404
from db.models import RemarkLog

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/remark-logs", tags=["remark-logs"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class RemarkLogCreate(CamelModel):
    entity_type: RemarkEntity
    entity_id: str = Field(..., min_length=1, max_length=50)
    remark: str = Field(..., min_length=1)
    created_by: str | None = Field(None, min_length=1, max_length=255)


class RemarkLogResponse(CamelModel):
    id: str
    entity_type: str
    entity_id: str
    remark: str
    created_by: str
    created_at: datetime


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("", response_model=list[RemarkLogResponse])
async def list_remark_logs(
    entity_type: RemarkEntity | None = None,
    entity_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """List remarks, newest first, optionally for a single entity."""
    query = select(RemarkLog)
    if entity_type:
        query = query.where(RemarkLog.entity_type == entity_type.value)
    if entity_id:
        query = query.where(RemarkLog.entity_id == entity_id)
    result = await db.execute(query.order_by(RemarkLog.created_at.desc(), RemarkLog.id.desc()))
    return result.scalars().all()


@router.get("/{remark_id}", response_model=RemarkLogResponse)
async def get_remark_log(
    remark_id: str,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    return await get_or_404(db, RemarkLog, remark_id, "Remark")


@router.post("", response_model=RemarkLogResponse, status_code=201)
async def create_remark_log(
    body: RemarkLogCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    created_by = body.created_by or await actor_display_name(db, actor)
    message = "Remark conflicts with existing data, please retry"
    remark = await add_with_identifier(
        db,
        RemarkLog,
        lambda remark_id: RemarkLog(
            id=remark_id,
            entity_type=body.entity_type,
            entity_id=body.entity_id,
            remark=body.remark,
            created_by=created_by,
        ),
        conflict_message=message,
    )
    await commit_or_conflict(db, message)
    await db.refresh(remark)
    logger.info("remark_log.created", remark_id=remark.id, entity_type=remark.entity_type, actor=actor.id)
    return remark
