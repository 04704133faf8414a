"""
Derived State — pure functions recomputed from current data on every read.

  - aging_days / aging_bucket: lead urgency from days since creation
  - is_delayed: order past its expected delivery and still open
  - product_status: stock level against the alert threshold
  - conversion_rate: won leads as a percentage of all leads

Nothing here touches storage, except product_status_expression(), which is
the SQL twin of product_status() for set-based recomputation.
"""

import math
from datetime import datetime, timezone

from sqlalchemy import case, literal

from crm.constants import AgingBucket, FINAL_ORDER_STATUSES, OrderStatus, ProductStatus

SECONDS_PER_DAY = 86400

# Upper bound (inclusive) in days for each bucket; anything older is Critical.
AGING_THRESHOLDS = {
    AgingBucket.FRESH: 2,
    AgingBucket.WARM: 5,
    AgingBucket.AT_RISK: 10,
}


def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def aging_days(reference: datetime, now: datetime | None = None) -> int:
    """Whole days since ``reference``, rounded up."""
    now = to_naive_utc(now or utcnow())
    elapsed = abs((now - to_naive_utc(reference)).total_seconds())
    return math.ceil(elapsed / SECONDS_PER_DAY)


def aging_bucket(days: int) -> AgingBucket:
    """Classify lead aging. Boundaries belong to the lower bucket."""
    if days <= AGING_THRESHOLDS[AgingBucket.FRESH]:
        return AgingBucket.FRESH
    elif days <= AGING_THRESHOLDS[AgingBucket.WARM]:
        return AgingBucket.WARM
    elif days <= AGING_THRESHOLDS[AgingBucket.AT_RISK]:
        return AgingBucket.AT_RISK
    return AgingBucket.CRITICAL


def is_delayed(
    expected_delivery_date: datetime,
    status: OrderStatus | str,
    now: datetime | None = None,
) -> bool:
    now = to_naive_utc(now or utcnow())
    if OrderStatus(status) in FINAL_ORDER_STATUSES:
        return False
    return now > to_naive_utc(expected_delivery_date)


def product_status(available_quantity: int, threshold_quantity: int) -> ProductStatus:
    if available_quantity <= 0:
        return ProductStatus.OUT_OF_STOCK
    if available_quantity <= threshold_quantity:
        return ProductStatus.ALERT
    return ProductStatus.ACTIVE


def product_status_expression(available_column, threshold_column):
    """SQL CASE expression equivalent to product_status()."""
    return case(
        (available_column <= 0, literal(ProductStatus.OUT_OF_STOCK.value)),
        (available_column <= threshold_column, literal(ProductStatus.ALERT.value)),
        else_=literal(ProductStatus.ACTIVE.value),
    )


def conversion_rate(won: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return won / total * 100
