"""
Call Logs Router — inbound calls, the start of the call -> lead -> order chain.

A call whose next action is Follow-up and which carries a follow-up date also
gets a pending Follow-up task linked to it.
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Body, Depends, Query
from pydantic import Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.v1.schemas import CamelModel, MessageResponse, UTCDateTime, validated_changes
from core.security import Actor
from crm.constants import CallStatus, NextAction, QueryType, TaskLink, TaskStatus, TaskType
from crm.derived import utcnow
from crm.field_guard import CallLogField
from crm.identifiers import add_with_identifier
from crm.storage import commit_or_conflict, get_or_404
from db.models import CallLog, Task

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/call-logs", tags=["call-logs"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class CallLogCreate(CamelModel):
    call_date: UTCDateTime | None = None
    customer_name: str = Field(..., min_length=1, max_length=255)
    mobile: str = Field(..., min_length=1, max_length=20)
    query_type: QueryType
    product_interest: str | None = None
    next_action: NextAction
    follow_up_date: UTCDateTime | None = None
    remarks: str | None = None
    assigned_to: str = Field(..., min_length=1, max_length=255)
    status: CallStatus = CallStatus.OPEN


class CallLogUpdate(CamelModel):
    call_date: UTCDateTime | None = None
    customer_name: str | None = Field(None, min_length=1, max_length=255)
    mobile: str | None = Field(None, min_length=1, max_length=20)
    query_type: QueryType | None = None
    product_interest: str | None = None
    next_action: NextAction | None = None
    follow_up_date: UTCDateTime | None = None
    remarks: str | None = None
    assigned_to: str | None = Field(None, min_length=1, max_length=255)
    status: CallStatus | None = None


class CallLogResponse(CamelModel):
    id: str
    call_date: datetime
    customer_name: str
    mobile: str
    query_type: str
    product_interest: str | None
    next_action: str
    follow_up_date: datetime | None
    remarks: str | None
    assigned_to: str
    status: str
    created_at: datetime
    updated_at: datetime


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("", response_model=list[CallLogResponse])
async def list_call_logs(
    status: CallStatus | None = None,
    mobile: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(200, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """List call logs, newest call first."""
    query = select(CallLog)
    if status:
        query = query.where(CallLog.status == status.value)
    if mobile:
        query = query.where(CallLog.mobile == mobile)
    query = query.order_by(CallLog.call_date.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{call_id}", response_model=CallLogResponse)
async def get_call_log(
    call_id: str,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    return await get_or_404(db, CallLog, call_id, "Call log")


@router.post("", response_model=CallLogResponse, status_code=201)
async def create_call_log(
    body: CallLogCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """Record a call; schedules a follow-up task when one is requested."""
    values = body.model_dump()
    values["call_date"] = values["call_date"] or utcnow()
    message = "Call log conflicts with existing data, please retry"
    call = await add_with_identifier(
        db, CallLog, lambda call_id: CallLog(id=call_id, **values), conflict_message=message
    )

    if call.next_action == NextAction.FOLLOW_UP.value and call.follow_up_date is not None:
        await add_with_identifier(
            db,
            Task,
            lambda task_id: Task(
                id=task_id,
                type=TaskType.FOLLOW_UP.value,
                linked_to=TaskLink.CALL.value,
                linked_id=call.id,
                customer_name=call.customer_name,
                due_date=call.follow_up_date,
                status=TaskStatus.PENDING.value,
                assigned_to=call.assigned_to,
                remarks=f"Follow up on {call.query_type.lower()}",
            ),
            conflict_message=message,
        )

    await commit_or_conflict(db, message)
    await db.refresh(call)
    logger.info("call_log.created", call_id=call.id, actor=actor.id)
    return call


@router.put("/{call_id}", response_model=CallLogResponse)
async def update_call_log(
    call_id: str,
    body: dict = Body(...),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """Partially update a call log (allow-listed fields only)."""
    changes = validated_changes(CallLogField, CallLogUpdate, CallLog, body)
    call = await get_or_404(db, CallLog, call_id, "Call log")
    for column, value in changes.items():
        setattr(call, column, value)
    call.updated_at = utcnow()

    await commit_or_conflict(db, "Call log update conflicts with existing data")
    await db.refresh(call)
    logger.info("call_log.updated", call_id=call_id, fields=sorted(changes), actor=actor.id)
    return call


@router.delete("/{call_id}", response_model=MessageResponse)
async def delete_call_log(
    call_id: str,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """Delete a call log. Leads and orders keep their data; only the link is cleared."""
    call = await get_or_404(db, CallLog, call_id, "Call log")
    await db.delete(call)
    await db.commit()
    logger.info("call_log.deleted", call_id=call_id, actor=actor.id)
    return MessageResponse(message="Call log deleted successfully")
