"""
Leads Router — sales leads with computed aging, and lead-to-order conversion.
"""

from datetime import datetime
from decimal import Decimal

import structlog
from fastapi import APIRouter, Body, Depends, Query
from pydantic import Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.v1.routers.orders import OrderLineIn, OrderResponse, to_line_requests
from api.v1.schemas import CamelModel, MessageResponse, UTCDateTime, validated_changes
from core.security import Actor
from crm import orders as order_service
from crm.constants import LeadStatus, PaymentStatus
from crm.derived import utcnow
from crm.errors import ValidationError
from crm.field_guard import LeadField
from crm.identifiers import add_with_identifier
from crm.storage import commit_or_conflict, get_or_404
from db.models import CallLog, Lead

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/leads", tags=["leads"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class LeadCreate(CamelModel):
    call_id: str | None = None
    customer_name: str = Field(..., min_length=1, max_length=255)
    mobile: str = Field(..., min_length=1, max_length=20)
    email: str | None = None
    address: str | None = None
    product_interest: str | None = None
    planned_purchase_quantity: int | None = Field(None, ge=0)
    status: LeadStatus = LeadStatus.NEW
    created_date: UTCDateTime | None = None
    last_follow_up: UTCDateTime | None = None
    next_follow_up: UTCDateTime | None = None
    assigned_to: str = Field(..., min_length=1, max_length=255)
    estimated_value: Decimal | None = Field(None, ge=0)
    remarks: str | None = None


class LeadUpdate(CamelModel):
    call_id: str | None = None
    customer_name: str | None = Field(None, min_length=1, max_length=255)
    mobile: str | None = Field(None, min_length=1, max_length=20)
    email: str | None = None
    address: str | None = None
    product_interest: str | None = None
    planned_purchase_quantity: int | None = Field(None, ge=0)
    status: LeadStatus | None = None
    created_date: UTCDateTime | None = None
    last_follow_up: UTCDateTime | None = None
    next_follow_up: UTCDateTime | None = None
    assigned_to: str | None = Field(None, min_length=1, max_length=255)
    estimated_value: Decimal | None = Field(None, ge=0)
    remarks: str | None = None


class LeadResponse(CamelModel):
    id: str
    call_id: str | None
    customer_name: str
    mobile: str
    email: str | None
    address: str | None
    product_interest: str | None
    planned_purchase_quantity: int | None
    status: str
    created_date: datetime
    aging_days: int
    aging_bucket: str
    last_follow_up: datetime | None
    next_follow_up: datetime | None
    assigned_to: str
    estimated_value: float | None
    remarks: str | None
    created_at: datetime
    updated_at: datetime


class LeadConversion(CamelModel):
    products: list[OrderLineIn] = Field(..., min_length=1)
    delivery_address: str | None = Field(None, min_length=1)
    expected_delivery_date: UTCDateTime | None = None
    payment_status: PaymentStatus | None = None
    invoice_number: str | None = None
    assigned_to: str | None = Field(None, min_length=1, max_length=255)
    remarks: str | None = None


async def _check_call(db: AsyncSession, call_id: str | None) -> None:
    if call_id and await db.get(CallLog, call_id) is None:
        raise ValidationError(f"Call log {call_id} does not exist")


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("", response_model=list[LeadResponse])
async def list_leads(
    status: LeadStatus | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(200, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """List leads, newest first. Aging is computed on read."""
    query = select(Lead)
    if status:
        query = query.where(Lead.status == status.value)
    query = query.order_by(Lead.created_date.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{lead_id}", response_model=LeadResponse)
async def get_lead(
    lead_id: str,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    return await get_or_404(db, Lead, lead_id, "Lead")


@router.post("", response_model=LeadResponse, status_code=201)
async def create_lead(
    body: LeadCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    await _check_call(db, body.call_id)
    values = body.model_dump()
    values["created_date"] = values["created_date"] or utcnow()
    message = "Lead conflicts with existing data, please retry"
    lead = await add_with_identifier(db, Lead, lambda lead_id: Lead(id=lead_id, **values), conflict_message=message)
    await commit_or_conflict(db, message)
    await db.refresh(lead)
    logger.info("lead.created", lead_id=lead.id, actor=actor.id)
    return lead


@router.put("/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: str,
    body: dict = Body(...),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """Partially update a lead. agingDays and agingBucket are never writable."""
    changes = validated_changes(LeadField, LeadUpdate, Lead, body)
    lead = await get_or_404(db, Lead, lead_id, "Lead")
    await _check_call(db, changes.get("call_id"))
    for column, value in changes.items():
        setattr(lead, column, value)
    lead.updated_at = utcnow()

    await commit_or_conflict(db, "Lead update conflicts with existing data")
    await db.refresh(lead)
    logger.info("lead.updated", lead_id=lead_id, fields=sorted(changes), actor=actor.id)
    return lead


@router.delete("/{lead_id}", response_model=MessageResponse)
async def delete_lead(
    lead_id: str,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """Delete a lead. Orders created from it keep their data; only the link is cleared."""
    lead = await get_or_404(db, Lead, lead_id, "Lead")
    await db.delete(lead)
    await db.commit()
    logger.info("lead.deleted", lead_id=lead_id, actor=actor.id)
    return MessageResponse(message="Lead deleted successfully")


@router.post("/{lead_id}/convert", response_model=OrderResponse, status_code=201)
async def convert_lead(
    lead_id: str,
    body: LeadConversion,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """Create an order from a lead and mark the lead Won."""
    overrides = body.model_dump(exclude={"products"}, exclude_none=True)
    return await order_service.convert_lead_to_order(
        db, lead_id, overrides, to_line_requests(body.products)
    )
