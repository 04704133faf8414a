"""
Dashboard Router — operational counters, recomputed from current rows per request.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.v1.schemas import CamelModel
from core.config import get_settings
from core.security import Actor
from crm.dashboard import compute_stats
from db.models import CallLog, Lead, Order, Product, Task

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


class BucketCount(CamelModel):
    bucket: str
    count: int


class StatusCount(CamelModel):
    status: str
    count: int


class DashboardResponse(CamelModel):
    calls_today: int
    follow_ups_due_today: int
    new_leads_today: int
    active_leads: int
    critical_leads: int
    total_orders: int
    delayed_orders: int
    todays_deliveries: int
    conversion_rate: float
    low_stock_products: int
    leads_by_bucket: list[BucketCount]
    orders_by_status: list[StatusCount]


@router.get("/stats", response_model=DashboardResponse)
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    """Aggregate calls, tasks, leads, orders and stock for the home screen."""
    call_logs = (await db.execute(select(CallLog))).scalars().all()
    tasks = (await db.execute(select(Task))).scalars().all()
    leads = (await db.execute(select(Lead))).scalars().all()
    orders = (await db.execute(select(Order))).scalars().all()
    products = (await db.execute(select(Product).where(Product.is_active.is_(True)))).scalars().all()

    stats = compute_stats(
        call_logs,
        tasks,
        leads,
        orders,
        products,
        tz_name=get_settings().business_timezone,
    )
    return DashboardResponse.model_validate(asdict(stats))
