"""
Renuga CRM Database Models

10 tables for the roofing-materials CRM.

Tables:
  1. users           - Staff accounts (bcrypt password hashes)
  2. products        - Catalog with stock level and alert threshold
  3. customers       - Customer master data
  4. call_logs       - Inbound calls (start of the lineage chain)
  5. leads           - Sales leads, optionally from a call
  6. orders          - Orders, optionally from a lead and/or call
  7. order_products  - Order lines (owned by their order)
  8. tasks           - Follow-ups, deliveries, call backs, meetings
  9. shift_notes     - Handover notes between shifts
  10. remark_logs    - Append-only remark audit trail

Lineage call_logs -> leads -> orders uses ON DELETE SET NULL.
Order lines cascade with their order and RESTRICT product deletion.
Every enumerated column carries a CHECK constraint.

Derived values (lead aging, order delay) are properties computed on read and
are not stored. Product status is stored for filtering but always recomputed
from available/threshold quantity on write.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from crm import derived
from crm.constants import (
    CallStatus,
    LeadStatus,
    NextAction,
    OrderStatus,
    PaymentStatus,
    ProductCategory,
    ProductStatus,
    QueryType,
    RemarkEntity,
    TaskLink,
    TaskStatus,
    TaskType,
    UserRole,
    check_in,
)
from crm.derived import utcnow
from db.session import Base

# ─── 1. Users ──────────────────────────────────────────────────────────────


class User(Base):
    __tablename__ = "users"

    id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (CheckConstraint(check_in("role", UserRole), name="ck_user_role"),)


# ─── 2. Products ────────────────────────────────────────────────────────────


class Product(Base):
    __tablename__ = "products"

    id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    unit = Column(String(50), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    available_quantity = Column(Integer, nullable=False, default=0)
    threshold_quantity = Column(Integer, nullable=False)
    status = Column(String(50), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(check_in("category", ProductCategory), name="ck_product_category"),
        CheckConstraint(check_in("status", ProductStatus), name="ck_product_status"),
        CheckConstraint("price >= 0", name="ck_product_price"),
        CheckConstraint("available_quantity >= 0", name="ck_product_available_quantity"),
        CheckConstraint("threshold_quantity >= 0", name="ck_product_threshold_quantity"),
    )

    def refresh_status(self) -> None:
        self.status = derived.product_status(self.available_quantity, self.threshold_quantity).value


# ─── 3. Customers ───────────────────────────────────────────────────────────


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    mobile = Column(String(20), nullable=False)
    email = Column(String(255))
    address = Column(Text)
    total_orders = Column(Integer, nullable=False, default=0)
    total_value = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


# ─── 4. Call Logs ───────────────────────────────────────────────────────────


class CallLog(Base):
    __tablename__ = "call_logs"

    id = Column(String(50), primary_key=True)
    call_date = Column(DateTime, nullable=False)
    customer_name = Column(String(255), nullable=False)
    mobile = Column(String(20), nullable=False)
    query_type = Column(String(100), nullable=False)
    product_interest = Column(String(255))
    next_action = Column(String(100), nullable=False)
    follow_up_date = Column(DateTime)
    remarks = Column(Text)
    assigned_to = Column(String(255), nullable=False)
    status = Column(String(50), nullable=False, default=CallStatus.OPEN.value)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_call_logs_mobile", "mobile"),
        Index("idx_call_logs_status", "status"),
        CheckConstraint(check_in("query_type", QueryType), name="ck_call_query_type"),
        CheckConstraint(check_in("next_action", NextAction), name="ck_call_next_action"),
        CheckConstraint(check_in("status", CallStatus), name="ck_call_status"),
    )


# ─── 5. Leads ───────────────────────────────────────────────────────────────


class Lead(Base):
    __tablename__ = "leads"

    id = Column(String(50), primary_key=True)
    call_id = Column(String(50), ForeignKey("call_logs.id", ondelete="SET NULL"), nullable=True)
    customer_name = Column(String(255), nullable=False)
    mobile = Column(String(20), nullable=False)
    email = Column(String(255))
    address = Column(Text)
    product_interest = Column(String(255))
    planned_purchase_quantity = Column(Integer)
    status = Column(String(100), nullable=False, default=LeadStatus.NEW.value)
    created_date = Column(DateTime, nullable=False, default=utcnow)
    last_follow_up = Column(DateTime)
    next_follow_up = Column(DateTime)
    assigned_to = Column(String(255), nullable=False)
    estimated_value = Column(Numeric(12, 2))
    remarks = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_leads_mobile", "mobile"),
        Index("idx_leads_status", "status"),
        CheckConstraint(check_in("status", LeadStatus), name="ck_lead_status"),
    )

    @property
    def aging_days(self) -> int:
        return derived.aging_days(self.created_date)

    @property
    def aging_bucket(self) -> str:
        return derived.aging_bucket(self.aging_days).value


# ─── 6. Orders ──────────────────────────────────────────────────────────────


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(50), primary_key=True)
    lead_id = Column(String(50), ForeignKey("leads.id", ondelete="SET NULL"), nullable=True)
    call_id = Column(String(50), ForeignKey("call_logs.id", ondelete="SET NULL"), nullable=True)
    customer_name = Column(String(255), nullable=False)
    mobile = Column(String(20), nullable=False)
    delivery_address = Column(Text, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(100), nullable=False, default=OrderStatus.ORDER_RECEIVED.value)
    order_date = Column(DateTime, nullable=False, default=utcnow)
    expected_delivery_date = Column(DateTime, nullable=False)
    actual_delivery_date = Column(DateTime)
    payment_status = Column(String(50), nullable=False, default=PaymentStatus.PENDING.value)
    invoice_number = Column(String(100))
    assigned_to = Column(String(255), nullable=False)
    remarks = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_orders_mobile", "mobile"),
        Index("idx_orders_status", "status"),
        CheckConstraint(check_in("status", OrderStatus), name="ck_order_status"),
        CheckConstraint(check_in("payment_status", PaymentStatus), name="ck_order_payment_status"),
    )

    lines = relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderLine.id",
    )

    @property
    def aging_days(self) -> int:
        return derived.aging_days(self.order_date)

    @property
    def is_delayed(self) -> bool:
        return derived.is_delayed(self.expected_delivery_date, self.status)


# ─── 7. Order Lines ─────────────────────────────────────────────────────────


class OrderLine(Base):
    __tablename__ = "order_products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(50), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(String(50), ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    product_name = Column(String(255), nullable=False)  # snapshot at order time
    quantity = Column(Integer, nullable=False)
    unit = Column(String(50), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_order_products_order", "order_id"),
        CheckConstraint("quantity > 0", name="ck_order_line_quantity"),
    )

    order = relationship("Order", back_populates="lines")


# ─── 8. Tasks ───────────────────────────────────────────────────────────────


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(50), primary_key=True)
    type = Column(String(100), nullable=False)
    linked_to = Column(String(50), nullable=False)
    linked_id = Column(String(50), nullable=False)
    customer_name = Column(String(255), nullable=False)
    due_date = Column(DateTime, nullable=False)
    status = Column(String(50), nullable=False, default=TaskStatus.PENDING.value)
    assigned_to = Column(String(255), nullable=False)
    remarks = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_tasks_due_date", "due_date"),
        Index("idx_tasks_status", "status"),
        CheckConstraint(check_in("type", TaskType), name="ck_task_type"),
        CheckConstraint(check_in("linked_to", TaskLink), name="ck_task_linked_to"),
        CheckConstraint(check_in("status", TaskStatus), name="ck_task_status"),
    )


# ─── 9. Shift Notes ─────────────────────────────────────────────────────────


class ShiftNote(Base):
    __tablename__ = "shift_notes"

    id = Column(String(50), primary_key=True)
    created_by = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


# ─── 10. Remark Logs ────────────────────────────────────────────────────────


class RemarkLog(Base):
    __tablename__ = "remark_logs"

    id = Column(String(50), primary_key=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(50), nullable=False)
    remark = Column(Text, nullable=False)
    created_by = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_remark_logs_entity", "entity_type", "entity_id"),
        CheckConstraint(check_in("entity_type", RemarkEntity), name="ck_remark_entity_type"),
    )
