"""
Customers Router — customer master data.
"""

from datetime import datetime
from decimal import Decimal

import structlog
from fastapi import APIRouter, Body, Depends
from pydantic import Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.v1.schemas import CamelModel, validated_changes
from core.security import Actor
from crm.derived import utcnow
from crm.field_guard import CustomerField
from crm.identifiers import add_with_identifier
from crm.storage import commit_or_conflict, get_or_404
from db.models import Customer

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/customers", tags=["customers"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class CustomerCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    mobile: str = Field(..., min_length=1, max_length=20)
    email: str | None = None
    address: str | None = None
    total_orders: int = Field(0, ge=0)
    total_value: Decimal = Field(Decimal(0), ge=0)


class CustomerUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    mobile: str | None = Field(None, min_length=1, max_length=20)
    email: str | None = None
    address: str | None = None
    total_orders: int | None = Field(None, ge=0)
    total_value: Decimal | None = Field(None, ge=0)


class CustomerResponse(CamelModel):
    id: str
    name: str
    mobile: str
    email: str | None
    address: str | None
    total_orders: int
    total_value: float
    created_at: datetime
    updated_at: datetime


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("", response_model=list[CustomerResponse])
async def list_customers(
    mobile: str | None = None,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    query = select(Customer)
    if mobile:
        query = query.where(Customer.mobile == mobile)
    result = await db.execute(query.order_by(Customer.name))
    return result.scalars().all()


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    return await get_or_404(db, Customer, customer_id, "Customer")


@router.post("", response_model=CustomerResponse, status_code=201)
async def create_customer(
    body: CustomerCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    message = "Customer conflicts with existing data, please retry"
    values = body.model_dump()
    customer = await add_with_identifier(
        db, Customer, lambda customer_id: Customer(id=customer_id, **values), conflict_message=message
    )
    await commit_or_conflict(db, message)
    await db.refresh(customer)
    logger.info("customer.created", customer_id=customer.id, actor=actor.id)
    return customer


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: str,
    body: dict = Body(...),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    changes = validated_changes(CustomerField, CustomerUpdate, Customer, body)
    customer = await get_or_404(db, Customer, customer_id, "Customer")
    for column, value in changes.items():
        setattr(customer, column, value)
    customer.updated_at = utcnow()

    await commit_or_conflict(db, "Customer update conflicts with existing data")
    await db.refresh(customer)
    logger.info("customer.updated", customer_id=customer_id, fields=sorted(changes), actor=actor.id)
    return customer
