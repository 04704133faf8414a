"""
Initial schema - all 10 tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

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

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # 1. Users
    op.create_table(
        "users",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(check_in("role", UserRole), name="ck_user_role"),
    )

    # 2. Products
    op.create_table(
        "products",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("unit", sa.String(50), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("available_quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("threshold_quantity", sa.Integer, nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint(check_in("category", ProductCategory), name="ck_product_category"),
        sa.CheckConstraint(check_in("status", ProductStatus), name="ck_product_status"),
        sa.CheckConstraint("price >= 0", name="ck_product_price"),
        sa.CheckConstraint("available_quantity >= 0", name="ck_product_available_quantity"),
        sa.CheckConstraint("threshold_quantity >= 0", name="ck_product_threshold_quantity"),
    )

    # 3. Customers
    op.create_table(
        "customers",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("mobile", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("address", sa.Text),
        sa.Column("total_orders", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_value", sa.Numeric(12, 2), nullable=False, server_default="0"),
        *_timestamps(),
    )

    # 4. Call logs
    op.create_table(
        "call_logs",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("call_date", sa.DateTime, nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("mobile", sa.String(20), nullable=False),
        sa.Column("query_type", sa.String(100), nullable=False),
        sa.Column("product_interest", sa.String(255)),
        sa.Column("next_action", sa.String(100), nullable=False),
        sa.Column("follow_up_date", sa.DateTime),
        sa.Column("remarks", sa.Text),
        sa.Column("assigned_to", sa.String(255), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default=CallStatus.OPEN.value),
        *_timestamps(),
        sa.CheckConstraint(check_in("query_type", QueryType), name="ck_call_query_type"),
        sa.CheckConstraint(check_in("next_action", NextAction), name="ck_call_next_action"),
        sa.CheckConstraint(check_in("status", CallStatus), name="ck_call_status"),
    )
    op.create_index("idx_call_logs_mobile", "call_logs", ["mobile"])
    op.create_index("idx_call_logs_status", "call_logs", ["status"])

    # 5. Leads
    op.create_table(
        "leads",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("call_id", sa.String(50), sa.ForeignKey("call_logs.id", ondelete="SET NULL")),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("mobile", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("address", sa.Text),
        sa.Column("product_interest", sa.String(255)),
        sa.Column("planned_purchase_quantity", sa.Integer),
        sa.Column("status", sa.String(100), nullable=False, server_default=LeadStatus.NEW.value),
        sa.Column("created_date", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("last_follow_up", sa.DateTime),
        sa.Column("next_follow_up", sa.DateTime),
        sa.Column("assigned_to", sa.String(255), nullable=False),
        sa.Column("estimated_value", sa.Numeric(12, 2)),
        sa.Column("remarks", sa.Text),
        *_timestamps(),
        sa.CheckConstraint(check_in("status", LeadStatus), name="ck_lead_status"),
    )
    op.create_index("idx_leads_mobile", "leads", ["mobile"])
    op.create_index("idx_leads_status", "leads", ["status"])

    # 6. Orders
    op.create_table(
        "orders",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("lead_id", sa.String(50), sa.ForeignKey("leads.id", ondelete="SET NULL")),
        sa.Column("call_id", sa.String(50), sa.ForeignKey("call_logs.id", ondelete="SET NULL")),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("mobile", sa.String(20), nullable=False),
        sa.Column("delivery_address", sa.Text, nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(100), nullable=False, server_default=OrderStatus.ORDER_RECEIVED.value),
        sa.Column("order_date", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("expected_delivery_date", sa.DateTime, nullable=False),
        sa.Column("actual_delivery_date", sa.DateTime),
        sa.Column("payment_status", sa.String(50), nullable=False, server_default=PaymentStatus.PENDING.value),
        sa.Column("invoice_number", sa.String(100)),
        sa.Column("assigned_to", sa.String(255), nullable=False),
        sa.Column("remarks", sa.Text),
        *_timestamps(),
        sa.CheckConstraint(check_in("status", OrderStatus), name="ck_order_status"),
        sa.CheckConstraint(check_in("payment_status", PaymentStatus), name="ck_order_payment_status"),
    )
    op.create_index("idx_orders_mobile", "orders", ["mobile"])
    op.create_index("idx_orders_status", "orders", ["status"])

    # 7. Order lines
    op.create_table(
        "order_products",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.String(50), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.String(50), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("unit", sa.String(50), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity > 0", name="ck_order_line_quantity"),
    )
    op.create_index("idx_order_products_order", "order_products", ["order_id"])

    # 8. Tasks
    op.create_table(
        "tasks",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("linked_to", sa.String(50), nullable=False),
        sa.Column("linked_id", sa.String(50), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("due_date", sa.DateTime, nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default=TaskStatus.PENDING.value),
        sa.Column("assigned_to", sa.String(255), nullable=False),
        sa.Column("remarks", sa.Text),
        *_timestamps(),
        sa.CheckConstraint(check_in("type", TaskType), name="ck_task_type"),
        sa.CheckConstraint(check_in("linked_to", TaskLink), name="ck_task_linked_to"),
        sa.CheckConstraint(check_in("status", TaskStatus), name="ck_task_status"),
    )
    op.create_index("idx_tasks_due_date", "tasks", ["due_date"])
    op.create_index("idx_tasks_status", "tasks", ["status"])

    # 9. Shift notes
    op.create_table(
        "shift_notes",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("created_by", sa.String(255), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # 10. Remark logs
    op.create_table(
        "remark_logs",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(50), nullable=False),
        sa.Column("remark", sa.Text, nullable=False),
        sa.Column("created_by", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(check_in("entity_type", RemarkEntity), name="ck_remark_entity_type"),
    )
    op.create_index("idx_remark_logs_entity", "remark_logs", ["entity_type", "entity_id"])


def downgrade() -> None:
    tables = [
        "remark_logs",
        "shift_notes",
        "tasks",
        "order_products",
        "orders",
        "leads",
        "call_logs",
        "customers",
        "products",
        "users",
    ]
    for table in tables:
        op.drop_table(table)
