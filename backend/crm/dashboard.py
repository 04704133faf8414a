"""
Dashboard Aggregates — counts recomputed from current rows on every request.

All functions are pure over sequences of records; the router only loads rows.
"Today" is the calendar day in the business timezone, expressed as a naive
UTC window so it compares directly with stored timestamps.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from crm import derived
from crm.constants import (
    CLOSED_LEAD_STATUSES,
    AgingBucket,
    LeadStatus,
    OrderStatus,
    ProductStatus,
    TaskStatus,
)


@dataclass
class DashboardStats:
    calls_today: int = 0
    follow_ups_due_today: int = 0
    new_leads_today: int = 0
    active_leads: int = 0
    critical_leads: int = 0
    total_orders: int = 0
    delayed_orders: int = 0
    todays_deliveries: int = 0
    conversion_rate: float = 0.0
    low_stock_products: int = 0
    leads_by_bucket: list[dict] = field(default_factory=list)
    orders_by_status: list[dict] = field(default_factory=list)


def today_window(now: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """[start, end) of the local calendar day containing ``now``, as naive UTC."""
    tz = ZoneInfo(tz_name)
    aware_now = now.replace(tzinfo=timezone.utc) if now.tzinfo is None else now
    local_day = aware_now.astimezone(tz).date()
    start = datetime.combine(local_day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return derived.to_naive_utc(start), derived.to_naive_utc(end)


def _within(value: datetime | None, window: tuple[datetime, datetime]) -> bool:
    if value is None:
        return False
    value = derived.to_naive_utc(value)
    return window[0] <= value < window[1]


def _is_open_lead(lead) -> bool:
    return LeadStatus(lead.status) not in CLOSED_LEAD_STATUSES


def compute_stats(
    call_logs: Sequence,
    tasks: Sequence,
    leads: Sequence,
    orders: Sequence,
    products: Sequence,
    now: datetime | None = None,
    tz_name: str = "UTC",
) -> DashboardStats:
    now = derived.to_naive_utc(now or derived.utcnow())
    window = today_window(now, tz_name)

    buckets = {lead.id: derived.aging_bucket(derived.aging_days(lead.created_date, now)) for lead in leads}
    open_leads = [lead for lead in leads if _is_open_lead(lead)]
    won = sum(1 for lead in leads if LeadStatus(lead.status) == LeadStatus.WON)

    stats = DashboardStats(
        calls_today=sum(1 for c in call_logs if _within(c.call_date, window)),
        follow_ups_due_today=sum(
            1 for t in tasks if TaskStatus(t.status) != TaskStatus.DONE and _within(t.due_date, window)
        ),
        new_leads_today=sum(1 for lead in leads if _within(lead.created_date, window)),
        active_leads=len(open_leads),
        critical_leads=sum(1 for lead in open_leads if buckets[lead.id] == AgingBucket.CRITICAL),
        total_orders=len(orders),
        delayed_orders=sum(
            1 for o in orders if derived.is_delayed(o.expected_delivery_date, o.status, now)
        ),
        todays_deliveries=sum(
            1
            for o in orders
            if OrderStatus(o.status) != OrderStatus.DELIVERED and _within(o.expected_delivery_date, window)
        ),
        conversion_rate=derived.conversion_rate(won, len(leads)),
        low_stock_products=sum(
            1
            for p in products
            if derived.product_status(p.available_quantity, p.threshold_quantity) != ProductStatus.ACTIVE
        ),
    )
    stats.leads_by_bucket = [
        {"bucket": bucket.value, "count": sum(1 for lead in open_leads if buckets[lead.id] == bucket)}
        for bucket in AgingBucket
    ]
    stats.orders_by_status = [
        {"status": status.value, "count": sum(1 for o in orders if OrderStatus(o.status) == status)}
        for status in OrderStatus
    ]
    return stats
