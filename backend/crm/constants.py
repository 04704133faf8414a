"""
Enumerated values shared by the storage schema, the API schemas and the
derived-state rules. The stored strings are also the external values.
"""

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "Admin"
    FRONT_DESK = "Front Desk"
    SALES = "Sales"
    OPERATIONS = "Operations"


class ProductCategory(str, Enum):
    ROOFING_SHEET = "Roofing Sheet"
    TILE = "Tile"
    ACCESSORIES = "Accessories"


class ProductStatus(str, Enum):
    ACTIVE = "Active"
    ALERT = "Alert"
    OUT_OF_STOCK = "Out of Stock"


class QueryType(str, Enum):
    PRICE_INQUIRY = "Price Inquiry"
    PRODUCT_INFO = "Product Info"
    COMPLAINT = "Complaint"
    ORDER_STATUS = "Order Status"
    GENERAL = "General"


class NextAction(str, Enum):
    FOLLOW_UP = "Follow-up"
    LEAD_CREATED = "Lead Created"
    ORDER_UPDATED = "Order Updated"
    NEW_ORDER = "New Order"
    NO_ACTION = "No Action"


class CallStatus(str, Enum):
    OPEN = "Open"
    CLOSED = "Closed"


class LeadStatus(str, Enum):
    NEW = "New"
    CONTACTED = "Contacted"
    QUOTED = "Quoted"
    NEGOTIATION = "Negotiation"
    WON = "Won"
    LOST = "Lost"


class AgingBucket(str, Enum):
    FRESH = "Fresh"
    WARM = "Warm"
    AT_RISK = "At Risk"
    CRITICAL = "Critical"


class OrderStatus(str, Enum):
    ORDER_RECEIVED = "Order Received"
    IN_PRODUCTION = "In Production"
    READY_FOR_DELIVERY = "Ready for Delivery"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PARTIAL = "Partial"
    COMPLETED = "Completed"


class TaskType(str, Enum):
    FOLLOW_UP = "Follow-up"
    DELIVERY = "Delivery"
    CALL_BACK = "Call Back"
    MEETING = "Meeting"


class TaskLink(str, Enum):
    LEAD = "Lead"
    ORDER = "Order"
    CALL = "Call"


class TaskStatus(str, Enum):
    PENDING = "Pending"
    DONE = "Done"
    OVERDUE = "Overdue"


class RemarkEntity(str, Enum):
    CALL_LOG = "callLog"
    LEAD = "lead"
    ORDER = "order"
    PRODUCT = "product"
    CUSTOMER = "customer"
    USER = "user"


CLOSED_LEAD_STATUSES = frozenset({LeadStatus.WON, LeadStatus.LOST})
FINAL_ORDER_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def check_in(column: str, enum_cls: type[Enum]) -> str:
    """SQL CHECK expression restricting ``column`` to the enum's values."""
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"
