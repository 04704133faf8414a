"""
Products Router — CRUD for the product catalog.

Status is never written directly: it is recomputed from available and
threshold quantity on every create and update.
"""

from datetime import datetime
from decimal import Decimal

import structlog
from fastapi import APIRouter, Body, Depends, Query
from pydantic import Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.v1.schemas import CamelModel, MessageResponse, validated_changes
from core.security import Actor
from crm.constants import ProductCategory, ProductStatus
from crm.derived import utcnow
from crm.field_guard import ProductField
from crm.identifiers import add_with_identifier
from crm.storage import commit_or_conflict, get_or_404
from db.models import Product

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/products", tags=["products"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: ProductCategory
    unit: str = Field(..., min_length=1, max_length=50)
    price: Decimal = Field(..., ge=0)
    available_quantity: int = Field(0, ge=0)
    threshold_quantity: int = Field(..., ge=0)
    is_active: bool = True


class ProductUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    category: ProductCategory | None = None
    unit: str | None = Field(None, min_length=1, max_length=50)
    price: Decimal | None = Field(None, ge=0)
    available_quantity: int | None = Field(None, ge=0)
    threshold_quantity: int | None = Field(None, ge=0)
    is_active: bool | None = None


class ProductResponse(CamelModel):
    id: str
    name: str
    category: str
    unit: str
    price: float
    available_quantity: int
    threshold_quantity: int
    status: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("", response_model=list[ProductResponse])
async def list_products(
    skip: int = Query(0, ge=0),
    limit: int = Query(200, ge=1, le=1000),
    category: ProductCategory | None = None,
    status: ProductStatus | None = None,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """List products by name with optional category and status filters."""
    query = select(Product)
    if category:
        query = query.where(Product.category == category.value)
    if status:
        query = query.where(Product.status == status.value)
    query = query.order_by(Product.name).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """Get a single product by ID."""
    return await get_or_404(db, Product, product_id, "Product")


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    body: ProductCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """Create a new product."""
    message = "Product conflicts with existing data, please retry"

    def build(product_id: str) -> Product:
        product = Product(id=product_id, **body.model_dump())
        product.refresh_status()
        return product

    product = await add_with_identifier(db, Product, build, conflict_message=message)
    await commit_or_conflict(db, message)
    await db.refresh(product)
    logger.info("product.created", product_id=product.id, status=product.status, actor=actor.id)
    return product


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    body: dict = Body(...),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """Update a product. Status follows the resulting quantities."""
    changes = validated_changes(ProductField, ProductUpdate, Product, body)
    product = await get_or_404(db, Product, product_id, "Product")
    for column, value in changes.items():
        setattr(product, column, value)
    product.refresh_status()
    product.updated_at = utcnow()

    await commit_or_conflict(db, "Product update conflicts with existing data")
    await db.refresh(product)
    logger.info("product.updated", product_id=product_id, fields=sorted(changes), actor=actor.id)
    return product


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: str,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """Delete a product. Refused while any order line references it."""
    product = await get_or_404(db, Product, product_id, "Product")
    await db.delete(product)
    await commit_or_conflict(
        db,
        "Product is referenced by existing orders and cannot be deleted",
        product_id=product_id,
    )
    logger.info("product.deleted", product_id=product_id, actor=actor.id)
    return MessageResponse(message="Product deleted successfully")
