"""
Field-Update Guard — allow-lists for partial updates.

Every PUT body passes through guard_update() before anything is written.
Each entity has an Enum whose member names are storage columns and whose
values are the external (camelCase) field names. Unknown fields are dropped
and logged; when nothing valid remains the update is rejected.

Derived fields (agingDays, agingBucket, isDelayed, product status,
order totalAmount) are intentionally absent: they are recomputed, never set.
"""

from enum import Enum
from typing import Any

import structlog

from crm.errors import ValidationError

logger = structlog.get_logger()


class CallLogField(Enum):
    call_date = "callDate"
    customer_name = "customerName"
    mobile = "mobile"
    query_type = "queryType"
    product_interest = "productInterest"
    next_action = "nextAction"
    follow_up_date = "followUpDate"
    remarks = "remarks"
    assigned_to = "assignedTo"
    status = "status"


class LeadField(Enum):
    call_id = "callId"
    customer_name = "customerName"
    mobile = "mobile"
    email = "email"
    address = "address"
    product_interest = "productInterest"
    planned_purchase_quantity = "plannedPurchaseQuantity"
    status = "status"
    created_date = "createdDate"
    last_follow_up = "lastFollowUp"
    next_follow_up = "nextFollowUp"
    assigned_to = "assignedTo"
    estimated_value = "estimatedValue"
    remarks = "remarks"


class OrderField(Enum):
    lead_id = "leadId"
    call_id = "callId"
    customer_name = "customerName"
    mobile = "mobile"
    delivery_address = "deliveryAddress"
    status = "status"
    order_date = "orderDate"
    expected_delivery_date = "expectedDeliveryDate"
    actual_delivery_date = "actualDeliveryDate"
    payment_status = "paymentStatus"
    invoice_number = "invoiceNumber"
    assigned_to = "assignedTo"
    remarks = "remarks"


class ProductField(Enum):
    name = "name"
    category = "category"
    unit = "unit"
    price = "price"
    available_quantity = "availableQuantity"
    threshold_quantity = "thresholdQuantity"
    is_active = "isActive"


class TaskField(Enum):
    type = "type"
    linked_to = "linkedTo"
    linked_id = "linkedId"
    customer_name = "customerName"
    due_date = "dueDate"
    status = "status"
    assigned_to = "assignedTo"
    remarks = "remarks"


class CustomerField(Enum):
    name = "name"
    mobile = "mobile"
    email = "email"
    address = "address"
    total_orders = "totalOrders"
    total_value = "totalValue"


class ShiftNoteField(Enum):
    content = "content"
    is_active = "isActive"


# The row id comes from the path and is skipped quietly.
_SILENT_KEYS = frozenset({"id"})


def guard_update(
    fields: type[Enum],
    updates: dict[str, Any],
    passthrough: frozenset[str] = frozenset(),
    allow_empty: bool = False,
) -> dict[str, Any]:
    """
    Filter ``updates`` down to the allow-listed external names.

    Returns a dict keyed by external name (ready for schema validation).
    Keys in ``passthrough`` are neither kept nor logged. Raises
    ValidationError when no allow-listed field remains, unless ``allow_empty``
    (used when the caller also handles passthrough keys itself).
    """
    accepted: dict[str, Any] = {}
    for key, value in updates.items():
        if key in _SILENT_KEYS or key in passthrough:
            continue
        try:
            fields(key)
        except ValueError:
            logger.warning("field_guard.dropped_field", entity=fields.__name__, field=key)
            continue
        accepted[key] = value

    if not accepted and not allow_empty:
        raise ValidationError("No valid fields to update")
    return accepted


def to_columns(fields: type[Enum], external: dict[str, Any]) -> dict[str, Any]:
    """Translate external names to storage column names."""
    return {fields(key).name: value for key, value in external.items()}
