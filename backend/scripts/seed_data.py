"""
Seed Demo Data — staff accounts, catalog, customers, calls and leads.

Skips everything when any user already exists.

Run: python scripts/seed_data.py
"""

import asyncio
from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import get_settings
from core.security import hash_password
from db.models import CallLog, Customer, Lead, Product, User
from db.session import Base, build_engine

logger = structlog.get_logger()

USERS = [
    ("U001", "Priya S.", "priya@renuga.com", "password123", "Front Desk"),
    ("U002", "Ravi K.", "ravi@renuga.com", "password123", "Sales"),
    ("U003", "Muthu R.", "muthu@renuga.com", "password123", "Operations"),
    ("U004", "Admin", "admin@renuga.com", "admin123", "Admin"),
]

# id, name, category, unit, price, available, threshold
PRODUCTS = [
    ("P001", "Color Coated Roofing Sheet", "Roofing Sheet", "Sq.ft", 45, 5000, 2500),
    ("P002", "GI Plain Sheet", "Roofing Sheet", "Sq.ft", 38, 2000, 2000),
    ("P003", "Polycarbonate Sheet", "Roofing Sheet", "Sq.ft", 85, 3000, 1500),
    ("P004", "Clay Roof Tile", "Tile", "Piece", 12, 800, 1000),
    ("P005", "Cement Roof Tile", "Tile", "Piece", 18, 2500, 1000),
    ("P006", "Ridge Cap", "Accessories", "Piece", 150, 300, 200),
    ("P007", "Self Drilling Screw", "Accessories", "Kg", 280, 50, 100),
    ("P008", "Turbo Ventilator", "Accessories", "Piece", 1200, 25, 20),
]

CUSTOMERS = [
    ("C001", "Kumar", "9876543210", "kumar@email.com", "45, Anna Nagar, Trichy", 2, 85000),
    ("C002", "Raja", "9876543211", "raja@email.com", "78, KK Nagar, Trichy", 1, 45000),
    ("C003", "Senthil Builders", "9876543212", "senthil@builders.com", "12, Thillai Nagar, Trichy", 5, 320000),
    ("C004", "Lakshmi Constructions", "9876543213", None, "99, Woraiyur, Trichy", 3, 175000),
    ("C005", "Murugan", "9876543214", None, "33, Srirangam, Trichy", 1, 28000),
]

CALL_LOGS = [
    {
        "id": "CALL-001",
        "call_date": datetime(2024, 12, 11, 9, 30),
        "customer_name": "Kumar",
        "mobile": "9876543210",
        "query_type": "Price Inquiry",
        "product_interest": "Color Coated Roofing Sheet",
        "next_action": "Lead Created",
        "remarks": "Interested in 500 sqft for new house construction",
        "assigned_to": "Priya S.",
        "status": "Closed",
    },
    {
        "id": "CALL-002",
        "call_date": datetime(2024, 12, 12, 10, 15),
        "customer_name": "Raja",
        "mobile": "9876543211",
        "query_type": "Order Status",
        "product_interest": "GI Plain Sheet",
        "next_action": "Order Updated",
        "remarks": "Checking delivery status for existing order",
        "assigned_to": "Priya S.",
        "status": "Closed",
    },
    {
        "id": "CALL-003",
        "call_date": datetime(2024, 12, 14, 11, 0),
        "customer_name": "Senthil Builders",
        "mobile": "9876543212",
        "query_type": "Price Inquiry",
        "product_interest": "Polycarbonate Sheet",
        "next_action": "Follow-up",
        "follow_up_date": datetime(2024, 12, 16, 14, 0),
        "remarks": "Needs quote for large project - 2000 sqft",
        "assigned_to": "Ravi K.",
        "status": "Open",
    },
    {
        "id": "CALL-004",
        "call_date": datetime(2024, 12, 15, 9, 0),
        "customer_name": "Lakshmi Constructions",
        "mobile": "9876543213",
        "query_type": "Product Info",
        "product_interest": "Turbo Ventilator",
        "next_action": "Follow-up",
        "follow_up_date": datetime(2024, 12, 15, 16, 0),
        "remarks": "Inquiring about bulk purchase for new project",
        "assigned_to": "Ravi K.",
        "status": "Open",
    },
    {
        "id": "CALL-005",
        "call_date": datetime(2024, 12, 15, 10, 30),
        "customer_name": "Murugan",
        "mobile": "9876543214",
        "query_type": "Complaint",
        "product_interest": "Ridge Cap",
        "next_action": "Follow-up",
        "follow_up_date": datetime(2024, 12, 15, 15, 0),
        "remarks": "Minor issue with last delivery - missing 5 pieces",
        "assigned_to": "Muthu R.",
        "status": "Open",
    },
]

LEADS = [
    {
        "id": "L-101",
        "call_id": "CALL-001",
        "customer_name": "Kumar",
        "mobile": "9876543210",
        "email": "kumar@email.com",
        "address": "45, Anna Nagar, Trichy",
        "product_interest": "Color Coated Roofing Sheet",
        "planned_purchase_quantity": 500,
        "status": "Negotiation",
        "created_date": datetime(2024, 12, 11),
        "last_follow_up": datetime(2024, 12, 14),
        "next_follow_up": datetime(2024, 12, 16),
        "assigned_to": "Ravi K.",
        "estimated_value": Decimal(25000),
        "remarks": "Price negotiation in progress",
    },
    {
        "id": "L-102",
        "call_id": "CALL-003",
        "customer_name": "Senthil Builders",
        "mobile": "9876543212",
        "email": "senthil@builders.com",
        "address": "12, Thillai Nagar, Trichy",
        "product_interest": "Polycarbonate Sheet",
        "planned_purchase_quantity": 2000,
        "status": "Quoted",
        "created_date": datetime(2024, 12, 14),
        "last_follow_up": datetime(2024, 12, 14),
        "next_follow_up": datetime(2024, 12, 16),
        "assigned_to": "Ravi K.",
        "estimated_value": Decimal(170000),
        "remarks": "Quote sent for 2000 sqft",
    },
    {
        "id": "L-103",
        "call_id": "CALL-004",
        "customer_name": "Lakshmi Constructions",
        "mobile": "9876543213",
        "address": "99, Woraiyur, Trichy",
        "product_interest": "Turbo Ventilator",
        "planned_purchase_quantity": 40,
        "status": "New",
        "created_date": datetime(2024, 12, 15),
        "next_follow_up": datetime(2024, 12, 16),
        "assigned_to": "Ravi K.",
        "estimated_value": Decimal(48000),
        "remarks": "Bulk inquiry - 40 units",
    },
]


async def seed(db: AsyncSession) -> bool:
    """Insert the demo rows. Returns False when the database was already seeded."""
    existing = await db.scalar(select(func.count()).select_from(User))
    if existing:
        logger.info("seed.skipped", reason="users_exist", users=existing)
        return False

    # ── Users ────────────────────────────────────────────────
    for user_id, name, email, password, role in USERS:
        db.add(
            User(
                id=user_id,
                name=name,
                email=email,
                password_hash=hash_password(password),
                role=role,
                is_active=True,
            )
        )

    # ── Products ─────────────────────────────────────────────
    for product_id, name, category, unit, price, available, threshold in PRODUCTS:
        product = Product(
            id=product_id,
            name=name,
            category=category,
            unit=unit,
            price=Decimal(price),
            available_quantity=available,
            threshold_quantity=threshold,
            is_active=True,
        )
        product.refresh_status()
        db.add(product)

    # ── Customers ────────────────────────────────────────────
    for customer_id, name, mobile, email, address, total_orders, total_value in CUSTOMERS:
        db.add(
            Customer(
                id=customer_id,
                name=name,
                mobile=mobile,
                email=email,
                address=address,
                total_orders=total_orders,
                total_value=Decimal(total_value),
            )
        )
    await db.flush()

    # ── Calls, then the leads that reference them ───────────
    for row in CALL_LOGS:
        db.add(CallLog(**row))
    await db.flush()
    for row in LEADS:
        db.add(Lead(**row))

    await db.commit()
    logger.info(
        "seed.completed",
        users=len(USERS),
        products=len(PRODUCTS),
        customers=len(CUSTOMERS),
        call_logs=len(CALL_LOGS),
        leads=len(LEADS),
    )
    return True


async def main(create_tables: bool = False):
    settings = get_settings()
    engine = build_engine(settings.database_url, connect_timeout=settings.database_connect_timeout)
    try:
        if create_tables:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with SessionLocal() as db:
            await seed(db)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    import sys

    asyncio.run(main(create_tables="--create-tables" in sys.argv))
