"""
Orders Router — orders with their lines and stock allocation.

All stock movement happens in crm.orders; this module only parses payloads
and shapes responses. Lines travel as ``products`` on the wire.
"""

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Body, Depends
from pydantic import Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.v1.schemas import (
    CamelModel,
    MessageResponse,
    UTCDateTime,
    describe_validation_error,
    validated_changes,
)
from core.config import get_settings
from core.security import Actor
from crm import orders as order_service
from crm.constants import OrderStatus, PaymentStatus
from crm.errors import ValidationError
from crm.field_guard import OrderField
from db.models import Order

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])

LINES_KEY = "products"


# ─── Schemas ────────────────────────────────────────────────────────────────


class OrderLineIn(CamelModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    unit_price: Decimal | None = Field(None, ge=0)


class OrderCreate(CamelModel):
    lead_id: str | None = None
    call_id: str | None = None
    customer_name: str = Field(..., min_length=1, max_length=255)
    mobile: str = Field(..., min_length=1, max_length=20)
    delivery_address: str = Field(..., min_length=1)
    products: list[OrderLineIn] = Field(..., min_length=1)
    status: OrderStatus = OrderStatus.ORDER_RECEIVED
    order_date: UTCDateTime | None = None
    expected_delivery_date: UTCDateTime
    payment_status: PaymentStatus = PaymentStatus.PENDING
    invoice_number: str | None = None
    assigned_to: str = Field(..., min_length=1, max_length=255)
    remarks: str | None = None


class OrderUpdate(CamelModel):
    lead_id: str | None = None
    call_id: str | None = None
    customer_name: str | None = Field(None, min_length=1, max_length=255)
    mobile: str | None = Field(None, min_length=1, max_length=20)
    delivery_address: str | None = Field(None, min_length=1)
    status: OrderStatus | None = None
    order_date: UTCDateTime | None = None
    expected_delivery_date: UTCDateTime | None = None
    actual_delivery_date: UTCDateTime | None = None
    payment_status: PaymentStatus | None = None
    invoice_number: str | None = None
    assigned_to: str | None = Field(None, min_length=1, max_length=255)
    remarks: str | None = None


class OrderLineResponse(CamelModel):
    id: int
    product_id: str
    product_name: str
    quantity: int
    unit: str
    unit_price: float
    total_price: float


class OrderResponse(CamelModel):
    id: str
    lead_id: str | None
    call_id: str | None
    customer_name: str
    mobile: str
    delivery_address: str
    lines: list[OrderLineResponse] = Field(serialization_alias=LINES_KEY)
    total_amount: float
    status: str
    order_date: datetime
    expected_delivery_date: datetime
    actual_delivery_date: datetime | None
    aging_days: int
    is_delayed: bool
    payment_status: str
    invoice_number: str | None
    assigned_to: str
    remarks: str | None
    created_at: datetime
    updated_at: datetime


_line_list = TypeAdapter(list[OrderLineIn])


def to_line_requests(items: list[OrderLineIn]) -> list[order_service.LineRequest]:
    return [
        order_service.LineRequest(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
        )
        for item in items
    ]


def parse_lines(raw) -> list[order_service.LineRequest]:
    try:
        items = _line_list.validate_python(raw)
    except PydanticValidationError as exc:
        raise ValidationError(f"{LINES_KEY}: {describe_validation_error(exc)}") from exc
    return to_line_requests(items)


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("", response_model=list[OrderResponse])
async def list_orders(
    status: OrderStatus | None = None,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """List orders with their lines, newest first."""
    return await order_service.list_orders(db, status=status.value if status else None)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    return await order_service.load_order(db, order_id)


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(
    body: OrderCreate,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """Create an order; every line's stock is allocated or nothing is written."""
    fields = body.model_dump(exclude={"products"})
    if fields["order_date"] is None:
        del fields["order_date"]
    return await order_service.create_order(db, fields, to_line_requests(body.products))


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: str,
    body: dict = Body(...),
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """
    Partially update an order.

    When ``products`` is present it replaces the order's lines and the stock
    allocation is reconciled against the lines currently stored.
    """
    changes = validated_changes(
        OrderField,
        OrderUpdate,
        Order,
        body,
        passthrough=frozenset({LINES_KEY}),
        allow_empty=LINES_KEY in body,
    )
    lines = parse_lines(body[LINES_KEY]) if LINES_KEY in body else None
    return await order_service.update_order(db, order_id, changes, lines)


@router.delete("/{order_id}", response_model=MessageResponse)
async def delete_order(
    order_id: str,
    restock: bool | None = None,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """Delete an order and its lines. Stock is kept as allocated unless restocking is enabled."""
    if restock is None:
        restock = get_settings().restock_on_order_delete
    await order_service.delete_order(db, order_id, restock=restock)
    return MessageResponse(message="Order deleted successfully")
