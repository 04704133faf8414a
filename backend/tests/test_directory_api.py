"""
API Integration Tests — customers, users, shift notes and remark logs.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from api.deps import get_current_user
from api.main import app
from api.v1.routers import remark_logs
from core.security import Actor


@pytest.mark.asyncio
class TestCustomersApi:
    async def test_create_and_lookup_by_mobile(self, client: AsyncClient, seeded_db):
        resp = await client.post(
            "/api/v1/customers",
            json={"name": "Lakshmi Constructions", "mobile": "9876543211", "email": "info@lakshmi.com"},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["id"] == "C-1"
        assert data["totalOrders"] == 0
        assert data["totalValue"] == 0.0

        resp = await client.get("/api/v1/customers", params={"mobile": "9876543211"})
        assert [c["id"] for c in resp.json()] == ["C-1"]

    async def test_update_customer(self, client: AsyncClient, seeded_db):
        await client.post("/api/v1/customers", json={"name": "Kumar", "mobile": "9876543210"})
        resp = await client.put("/api/v1/customers/C-1", json={"address": "Trichy", "totalOrders": 2})
        assert resp.status_code == 200
        assert resp.json()["address"] == "Trichy"
        assert resp.json()["totalOrders"] == 2

    async def test_unknown_customer(self, client: AsyncClient, seeded_db):
        resp = await client.get("/api/v1/customers/C-404")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Customer not found"


@pytest.mark.asyncio
class TestUsersApi:
    async def test_password_hash_is_never_returned(self, client: AsyncClient, seeded_db):
        resp = await client.get("/api/v1/users")
        assert resp.status_code == 200
        users = resp.json()
        assert [u["email"] for u in users] == ["admin@renuga.com"]
        assert "passwordHash" not in users[0]
        assert "password_hash" not in users[0]

    async def test_directory_is_admin_only(self, client: AsyncClient, seeded_db):
        app.dependency_overrides[get_current_user] = lambda: Actor(
            id="U002", email="ravi@renuga.com", role="Sales"
        )
        resp = await client.get("/api/v1/users")
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Access denied"


@pytest.mark.asyncio
class TestShiftNotesApi:
    async def test_new_note_retires_previous(self, client: AsyncClient, seeded_db):
        first = (await client.post("/api/v1/shift-notes", json={"content": "Truck 2 in service"})).json()
        second = (await client.post("/api/v1/shift-notes", json={"content": "Call Kumar at 10"})).json()
        assert first["createdBy"] == "Admin"
        assert second["isActive"] is True

        active = (await client.get("/api/v1/shift-notes", params={"active_only": "true"})).json()
        assert [n["id"] for n in active] == [second["id"]]

        notes = (await client.get("/api/v1/shift-notes")).json()
        assert {n["id"]: n["isActive"] for n in notes} == {first["id"]: False, second["id"]: True}

    async def test_explicit_author(self, client: AsyncClient, seeded_db):
        resp = await client.post("/api/v1/shift-notes", json={"content": "Stock count", "createdBy": "Priya S."})
        assert resp.json()["createdBy"] == "Priya S."

    async def test_update_note(self, client: AsyncClient, seeded_db):
        note = (await client.post("/api/v1/shift-notes", json={"content": "Draft"})).json()
        resp = await client.put(f"/api/v1/shift-notes/{note['id']}", json={"content": "Final", "createdBy": "X"})
        assert resp.status_code == 200
        assert resp.json()["content"] == "Final"
        assert resp.json()["createdBy"] == "Admin"


@pytest.mark.asyncio
class TestRemarkLogsApi:
    async def test_filter_by_entity(self, client: AsyncClient, seeded_db):
        await client.post(
            "/api/v1/remark-logs",
            json={"entityType": "lead", "entityId": "L-1", "remark": "Asked for revised quote"},
        )
        await client.post(
            "/api/v1/remark-logs",
            json={"entityType": "order", "entityId": "ORD-1", "remark": "Payment pending"},
        )

        resp = await client.get("/api/v1/remark-logs", params={"entity_type": "lead", "entity_id": "L-1"})
        remarks = resp.json()
        assert len(remarks) == 1
        assert remarks[0]["remark"] == "Asked for revised quote"
        assert remarks[0]["createdBy"] == "Admin"

    async def test_rejects_unknown_entity_type(self, client: AsyncClient, seeded_db):
        resp = await client.post(
            "/api/v1/remark-logs",
            json={"entityType": "invoice", "entityId": "INV-1", "remark": "x"},
        )
        assert resp.status_code == 400

    async def test_remarks_are_append_only(self, client: AsyncClient, seeded_db):
        created = (
            await client.post(
                "/api/v1/remark-logs",
                json={"entityType": "lead", "entityId": "L-1", "remark": "First contact"},
            )
        ).json()
        assert (await client.put(f"/api/v1/remark-logs/{created['id']}", json={"remark": "x"})).status_code == 405
        assert (await client.delete(f"/api/v1/remark-logs/{created['id']}")).status_code == 405

    async def test_get_single_remark(self, client: AsyncClient, seeded_db):
        created = (
            await client.post(
                "/api/v1/remark-logs",
                json={"entityType": "order", "entityId": "ORD-1", "remark": "Dispatched by lorry"},
            )
        ).json()

        resp = await client.get(f"/api/v1/remark-logs/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["remark"] == "Dispatched by lorry"

        resp = await client.get("/api/v1/remark-logs/RL-999")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Remark not found"

    async def test_unexpected_failure_is_generic_500(self, client: AsyncClient, seeded_db, monkeypatch):
        async def _broken(*args, **kwargs):
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(remark_logs, "get_or_404", _broken)
        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        ) as raw:
            resp = await raw.get("/api/v1/remark-logs/RL-1")

        assert resp.status_code == 500
        assert resp.json() == {"detail": "Internal server error"}
