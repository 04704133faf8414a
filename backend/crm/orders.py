"""
Order Lifecycle — order create/update/delete with stock allocation.

Stock rules:
  1. Every allocation is a single conditional UPDATE
     (available_quantity -= q WHERE available_quantity >= q). Zero rows
     affected means the stock is gone and the whole transaction rolls back.
  2. An order holds stock for its lines unless it is Cancelled.
  3. Replacing lines restores the previous allocation, then allocates the
     new lines, inside the same transaction as the field update.
  4. Deleting an order does not restock unless explicitly requested.
  5. Product status is recomputed in SQL for every touched product before
     commit.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from crm.constants import LeadStatus, OrderStatus, PaymentStatus
from crm.derived import product_status_expression, utcnow
from crm.errors import (
    ConflictError,
    CRMError,
    InsufficientInventoryError,
    NotFoundError,
    OrderNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from crm.identifiers import add_with_identifier
from db.models import CallLog, Lead, Order, OrderLine, Product

logger = structlog.get_logger()

DEFAULT_DELIVERY_DAYS = 5
ORDER_CONFLICT = "The order conflicts with existing data, please retry"


@dataclass(frozen=True)
class LineRequest:
    product_id: str
    quantity: int
    unit_price: Decimal | None = None


def holds_stock(status: OrderStatus | str) -> bool:
    return OrderStatus(status) != OrderStatus.CANCELLED


# ──────────────────────────────────────────────────────────────────────────
# Inventory primitives
# ──────────────────────────────────────────────────────────────────────────


async def reserve_stock(db: AsyncSession, product: Product, quantity: int) -> None:
    """Atomically take ``quantity`` units or raise InsufficientInventoryError."""
    result = await db.execute(
        update(Product)
        .where(Product.id == product.id, Product.available_quantity >= quantity)
        .values(
            available_quantity=Product.available_quantity - quantity,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning(
            "inventory.insufficient",
            product_id=product.id,
            product_name=product.name,
            requested=quantity,
        )
        raise InsufficientInventoryError(product.name, product.id)


async def release_stock(db: AsyncSession, product_id: str, quantity: int) -> None:
    await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(
            available_quantity=Product.available_quantity + quantity,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )


async def refresh_product_statuses(db: AsyncSession, product_ids: set[str]) -> None:
    if not product_ids:
        return
    await db.execute(
        update(Product)
        .where(Product.id.in_(sorted(product_ids)))
        .values(status=product_status_expression(Product.available_quantity, Product.threshold_quantity))
        .execution_options(synchronize_session=False)
    )


# ──────────────────────────────────────────────────────────────────────────
# Queries
# ──────────────────────────────────────────────────────────────────────────


async def load_order(db: AsyncSession, order_id: str) -> Order:
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.lines))
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFoundError(order_id)
    return order


async def list_orders(db: AsyncSession, status: str | None = None) -> list[Order]:
    query = select(Order).options(selectinload(Order.lines))
    if status:
        query = query.where(Order.status == status)
    result = await db.execute(query.order_by(Order.order_date.desc()))
    return list(result.scalars().all())


# ──────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────


async def _check_lineage(db: AsyncSession, fields: dict[str, Any]) -> None:
    if fields.get("lead_id") and await db.get(Lead, fields["lead_id"]) is None:
        raise ValidationError(f"Lead {fields['lead_id']} does not exist")
    if fields.get("call_id") and await db.get(CallLog, fields["call_id"]) is None:
        raise ValidationError(f"Call log {fields['call_id']} does not exist")


async def _attach_lines(
    db: AsyncSession,
    order: Order,
    lines: list[LineRequest],
    allocate: bool,
) -> set[str]:
    """Insert the order's lines, allocating stock for each. Returns product ids touched."""
    if not lines:
        raise ValidationError("An order must contain at least one product")

    touched: set[str] = set()
    for request in lines:
        if request.quantity <= 0:
            raise ValidationError("Line quantity must be greater than zero")
        product = await db.get(Product, request.product_id)
        if product is None:
            raise ProductNotFoundError(request.product_id)

        unit_price = request.unit_price if request.unit_price is not None else Decimal(product.price)
        order.lines.append(
            OrderLine(
                product_id=product.id,
                product_name=product.name,
                quantity=request.quantity,
                unit=product.unit,
                unit_price=unit_price,
                total_price=unit_price * request.quantity,
            )
        )
        await db.flush()

        if allocate:
            await reserve_stock(db, product, request.quantity)
            touched.add(product.id)
    return touched


async def _release_lines(db: AsyncSession, order: Order) -> set[str]:
    touched: set[str] = set()
    for line in order.lines:
        await release_stock(db, line.product_id, line.quantity)
        touched.add(line.product_id)
    return touched


async def _reserve_existing_lines(db: AsyncSession, order: Order) -> set[str]:
    touched: set[str] = set()
    for line in order.lines:
        product = await db.get(Product, line.product_id)
        if product is None:
            raise ProductNotFoundError(line.product_id)
        await reserve_stock(db, product, line.quantity)
        touched.add(line.product_id)
    return touched


def _recompute_total(order: Order) -> None:
    order.total_amount = sum((Decimal(line.total_price) for line in order.lines), Decimal(0))


async def _insert_order(db: AsyncSession, fields: dict[str, Any], lines: list[LineRequest]) -> Order:
    await _check_lineage(db, fields)
    order = await add_with_identifier(
        db,
        Order,
        lambda order_id: Order(id=order_id, lines=[], **fields),
        conflict_message=ORDER_CONFLICT,
    )

    touched = await _attach_lines(db, order, lines, allocate=holds_stock(order.status))
    _recompute_total(order)
    await refresh_product_statuses(db, touched)
    return order


@asynccontextmanager
async def _rollback_on_error(db: AsyncSession, action: str, **context):
    """Roll back on any failure; constraint violations surface as ConflictError."""
    try:
        yield
    except CRMError:
        await db.rollback()
        raise
    except IntegrityError as exc:
        await db.rollback()
        logger.warning(f"order.{action}_conflict", error=str(exc.orig), **context)
        raise ConflictError(ORDER_CONFLICT) from exc


async def _commit_or_rollback(db: AsyncSession, action: str, **context) -> None:
    async with _rollback_on_error(db, action, **context):
        await db.commit()


# ──────────────────────────────────────────────────────────────────────────
# Operations
# ──────────────────────────────────────────────────────────────────────────


async def create_order(db: AsyncSession, fields: dict[str, Any], lines: list[LineRequest]) -> Order:
    """
    Create an order and allocate its stock in one transaction.

    ``fields`` are storage column values. Any failure rolls back the order,
    every line and every decrement already applied.
    """
    fields = dict(fields)
    fields.setdefault("order_date", utcnow())
    fields.setdefault("status", OrderStatus.ORDER_RECEIVED.value)
    fields.setdefault("payment_status", PaymentStatus.PENDING.value)

    async with _rollback_on_error(db, "create"):
        order = await _insert_order(db, fields, lines)
    order_id = order.id
    await _commit_or_rollback(db, "create", order_id=order_id)

    logger.info("order.created", order_id=order_id, lines=len(lines))
    return await load_order(db, order_id)


async def update_order(
    db: AsyncSession,
    order_id: str,
    changes: dict[str, Any],
    lines: list[LineRequest] | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Apply a partial update and, optionally, a full replacement of lines.

    Restore of the previous allocation and allocation of the new one run in
    the same transaction as the field update.
    """
    now = now or utcnow()
    if not changes and lines is None:
        raise ValidationError("No valid fields to update")

    async with _rollback_on_error(db, "update", order_id=order_id):
        order = await load_order(db, order_id)
        await _check_lineage(db, changes)

        held_before = holds_stock(order.status)
        for column, value in changes.items():
            setattr(order, column, value)
        held_after = holds_stock(order.status)

        touched: set[str] = set()
        if lines is not None:
            if held_before:
                touched |= await _release_lines(db, order)
            order.lines.clear()
            await db.flush()
            touched |= await _attach_lines(db, order, lines, allocate=held_after)
        elif held_before and not held_after:
            touched |= await _release_lines(db, order)
        elif held_after and not held_before:
            touched |= await _reserve_existing_lines(db, order)

        if OrderStatus(order.status) == OrderStatus.DELIVERED and order.actual_delivery_date is None:
            order.actual_delivery_date = now

        _recompute_total(order)
        order.updated_at = now
        await refresh_product_statuses(db, touched)
        await db.flush()
    await _commit_or_rollback(db, "update", order_id=order_id)

    logger.info(
        "order.updated",
        order_id=order_id,
        fields=sorted(changes),
        lines_replaced=lines is not None,
    )
    return await load_order(db, order_id)


async def delete_order(db: AsyncSession, order_id: str, restock: bool = False) -> None:
    """Hard-delete an order and its lines. Stock is only returned when ``restock``."""
    order = await load_order(db, order_id)
    touched: set[str] = set()
    if restock and holds_stock(order.status):
        touched = await _release_lines(db, order)
        await refresh_product_statuses(db, touched)

    await db.delete(order)
    await db.commit()
    logger.info("order.deleted", order_id=order_id, restocked=bool(touched))


async def convert_lead_to_order(
    db: AsyncSession,
    lead_id: str,
    overrides: dict[str, Any],
    lines: list[LineRequest],
    now: datetime | None = None,
) -> Order:
    """Create an order pre-filled from a lead and mark the lead Won, atomically."""
    now = now or utcnow()
    lead = await db.get(Lead, lead_id)
    if lead is None:
        raise NotFoundError("Lead not found")

    fields: dict[str, Any] = {
        "lead_id": lead.id,
        "call_id": lead.call_id,
        "customer_name": lead.customer_name,
        "mobile": lead.mobile,
        "delivery_address": lead.address or "",
        "status": OrderStatus.ORDER_RECEIVED.value,
        "order_date": now,
        "expected_delivery_date": now + timedelta(days=DEFAULT_DELIVERY_DAYS),
        "payment_status": PaymentStatus.PENDING.value,
        "assigned_to": lead.assigned_to,
        "remarks": lead.remarks,
    }
    fields.update(overrides)

    async with _rollback_on_error(db, "convert", lead_id=lead_id):
        lead.status = LeadStatus.WON.value
        lead.updated_at = now
        order = await _insert_order(db, fields, lines)
    order_id = order.id
    await _commit_or_rollback(db, "convert", order_id=order_id, lead_id=lead_id)

    logger.info("lead.converted", lead_id=lead_id, order_id=order_id)
    return await load_order(db, order_id)
