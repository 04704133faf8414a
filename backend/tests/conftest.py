"""
Test Configuration — Fixtures for async DB, test client, and mock data.

Each test gets its own SQLite file so several sessions can run against the
same database (the concurrency tests need real separate connections). Every
session is opened and closed around a single unit of work: SQLite takes the
write lock at BEGIN, so a session left open would block the others.
"""

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.deps import get_current_user, get_db
from api.main import app
from core.config import get_settings
from core.security import Actor, create_access_token, hash_password
from crm.derived import utcnow
from db.models import CallLog, Lead, Product, User
from db.session import Base, build_engine
from tests.factories import make_product

ADMIN = Actor(id="U004", email="admin@renuga.com", role="Admin")


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def test_engine(tmp_path):
    """Create a file-backed SQLite engine and build all tables."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'crm.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def mock_user():
    """Mock authenticated user."""
    return ADMIN


@pytest.fixture
async def client(session_factory, mock_user):
    """Create an async test client with dependency overrides."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    def override_get_current_user():
        return mock_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def anon_client(session_factory):
    """Client with the real auth dependency: requests need a bearer token."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = create_access_token(ADMIN.to_claims())
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def seeded_db(session_factory):
    """Seed a small catalog, one call, one lead and the admin user."""
    now = utcnow()
    async with session_factory() as db:
        db.add(
            User(
                id=ADMIN.id,
                name="Admin",
                email=ADMIN.email,
                password_hash=hash_password("admin123"),
                role=ADMIN.role,
                is_active=True,
            )
        )
        db.add(make_product("P-1", available=10, threshold=5, price="45.00", name="Color Coated Roofing Sheet"))
        db.add(make_product("P-2", available=100, threshold=10, price="12.00", name="Clay Roof Tile", category="Tile", unit="Piece"))
        db.add(make_product("P-3", available=5, threshold=2, price="1200.00", name="Turbo Ventilator", category="Accessories", unit="Piece"))
        db.add(
            CallLog(
                id="CALL-1",
                call_date=now - timedelta(days=1),
                customer_name="Kumar",
                mobile="9876543210",
                query_type="Price Inquiry",
                product_interest="Color Coated Roofing Sheet",
                next_action="Lead Created",
                assigned_to="Priya S.",
                status="Open",
            )
        )
        await db.flush()
        db.add(
            Lead(
                id="L-1",
                call_id="CALL-1",
                customer_name="Kumar",
                mobile="9876543210",
                address="45, Anna Nagar, Trichy",
                product_interest="Color Coated Roofing Sheet",
                status="Negotiation",
                created_date=now - timedelta(days=4) + timedelta(hours=1),
                assigned_to="Ravi K.",
                remarks="Price negotiation in progress",
            )
        )
        await db.commit()

    return {"product_ids": ["P-1", "P-2", "P-3"], "call_id": "CALL-1", "lead_id": "L-1"}


@pytest.fixture
def order_payload():
    def _build(*lines, **fields):
        payload = {
            "customerName": "Kumar",
            "mobile": "9876543210",
            "deliveryAddress": "45, Anna Nagar, Trichy",
            "expectedDeliveryDate": (utcnow() + timedelta(days=5)).isoformat(),
            "assignedTo": "Muthu R.",
            "products": [{"productId": pid, "quantity": qty} for pid, qty in lines],
        }
        payload.update(fields)
        return payload

    return _build


@pytest.fixture
def load_product(session_factory):
    async def _load(product_id: str) -> Product | None:
        async with session_factory() as db:
            return await db.get(Product, product_id)

    return _load
