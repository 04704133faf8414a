"""
API Integration Tests — orders and their stock effects over HTTP.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from core.config import get_settings
from crm import identifiers
from crm.derived import utcnow


@pytest.mark.asyncio
class TestOrdersApi:
    async def test_create_order(self, client: AsyncClient, seeded_db, order_payload, load_product):
        resp = await client.post("/api/v1/orders", json=order_payload(("P-1", 6), ("P-2", 10)))
        assert resp.status_code == 201
        data = resp.json()
        assert data["id"] == "ORD-1"
        assert data["status"] == "Order Received"
        assert data["paymentStatus"] == "Pending"
        assert data["totalAmount"] == 390.0
        assert data["isDelayed"] is False
        assert [(p["productId"], p["quantity"], p["productName"]) for p in data["products"]] == [
            ("P-1", 6, "Color Coated Roofing Sheet"),
            ("P-2", 10, "Clay Roof Tile"),
        ]

        product = await load_product("P-1")
        assert product.available_quantity == 4
        assert product.status == "Alert"

    async def test_insufficient_inventory_is_conflict(self, client: AsyncClient, seeded_db, order_payload, load_product):
        resp = await client.post("/api/v1/orders", json=order_payload(("P-2", 1), ("P-1", 11)))
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Insufficient inventory for product Color Coated Roofing Sheet"

        assert (await load_product("P-2")).available_quantity == 100
        resp = await client.get("/api/v1/orders")
        assert resp.json() == []

    async def test_unknown_product_is_not_found(self, client: AsyncClient, seeded_db, order_payload):
        resp = await client.post("/api/v1/orders", json=order_payload(("P-99", 1)))
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Product P-99 not found"

    async def test_empty_lines_are_invalid(self, client: AsyncClient, seeded_db, order_payload):
        resp = await client.post("/api/v1/orders", json=order_payload())
        assert resp.status_code == 400

    async def test_missing_required_field_is_invalid(self, client: AsyncClient, seeded_db, order_payload):
        payload = order_payload(("P-1", 1))
        del payload["deliveryAddress"]
        resp = await client.post("/api/v1/orders", json=payload)
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "deliveryAddress"

    async def test_get_order(self, client: AsyncClient, seeded_db, order_payload):
        created = (await client.post("/api/v1/orders", json=order_payload(("P-2", 3)))).json()
        resp = await client.get(f"/api/v1/orders/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["products"][0]["totalPrice"] == 36.0

    async def test_get_unknown_order(self, client: AsyncClient, seeded_db):
        resp = await client.get("/api/v1/orders/ORD-404")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Order not found"

    async def test_list_orders_newest_first(self, client: AsyncClient, seeded_db, order_payload):
        older = order_payload(("P-2", 1), orderDate=(utcnow() - timedelta(days=3) + timedelta(hours=1)).isoformat())
        await client.post("/api/v1/orders", json=older)
        await client.post("/api/v1/orders", json=order_payload(("P-2", 1)))

        resp = await client.get("/api/v1/orders")
        assert [o["id"] for o in resp.json()] == ["ORD-2", "ORD-1"]
        assert resp.json()[1]["agingDays"] == 3

        resp = await client.get("/api/v1/orders", params={"status": "Cancelled"})
        assert resp.json() == []

    async def test_update_replaces_lines(self, client: AsyncClient, seeded_db, order_payload, load_product):
        created = (await client.post("/api/v1/orders", json=order_payload(("P-1", 6)))).json()

        resp = await client.put(
            f"/api/v1/orders/{created['id']}",
            json={"products": [{"productId": "P-1", "quantity": 2}, {"productId": "P-3", "quantity": 1}]},
        )
        assert resp.status_code == 200
        assert resp.json()["totalAmount"] == 1290.0
        assert (await load_product("P-1")).available_quantity == 8
        assert (await load_product("P-3")).available_quantity == 4

    async def test_update_shortfall_rolls_back(self, client: AsyncClient, seeded_db, order_payload, load_product):
        created = (await client.post("/api/v1/orders", json=order_payload(("P-1", 6)))).json()

        resp = await client.put(
            f"/api/v1/orders/{created['id']}",
            json={"remarks": "more", "products": [{"productId": "P-1", "quantity": 20}]},
        )
        assert resp.status_code == 409
        assert (await load_product("P-1")).available_quantity == 4
        order = (await client.get(f"/api/v1/orders/{created['id']}")).json()
        assert order["remarks"] is None
        assert order["products"][0]["quantity"] == 6

    async def test_update_ignores_derived_and_unknown_fields(self, client: AsyncClient, seeded_db, order_payload):
        created = (await client.post("/api/v1/orders", json=order_payload(("P-2", 1)))).json()

        resp = await client.put(
            f"/api/v1/orders/{created['id']}",
            json={"totalAmount": 1, "isDelayed": True, "hacker": "x", "paymentStatus": "Completed"},
        )
        assert resp.status_code == 200
        assert resp.json()["paymentStatus"] == "Completed"
        assert resp.json()["totalAmount"] == 12.0

    async def test_update_without_valid_fields(self, client: AsyncClient, seeded_db, order_payload):
        created = (await client.post("/api/v1/orders", json=order_payload(("P-2", 1)))).json()
        resp = await client.put(f"/api/v1/orders/{created['id']}", json={"agingDays": 0})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "No valid fields to update"

    async def test_update_rejects_bad_status(self, client: AsyncClient, seeded_db, order_payload):
        created = (await client.post("/api/v1/orders", json=order_payload(("P-2", 1)))).json()
        resp = await client.put(f"/api/v1/orders/{created['id']}", json={"status": "Shipped"})
        assert resp.status_code == 400

    async def test_update_rejects_null_required_field(self, client: AsyncClient, seeded_db, order_payload):
        created = (await client.post("/api/v1/orders", json=order_payload(("P-2", 1)))).json()
        resp = await client.put(f"/api/v1/orders/{created['id']}", json={"customerName": None})
        assert resp.status_code == 400

    async def test_update_unknown_order(self, client: AsyncClient, seeded_db):
        resp = await client.put("/api/v1/orders/ORD-404", json={"remarks": "x"})
        assert resp.status_code == 404

    async def test_delivered_sets_actual_delivery_date(self, client: AsyncClient, seeded_db, order_payload):
        created = (await client.post("/api/v1/orders", json=order_payload(("P-2", 1)))).json()
        assert created["actualDeliveryDate"] is None

        resp = await client.put(f"/api/v1/orders/{created['id']}", json={"status": "Delivered"})
        assert resp.json()["actualDeliveryDate"] is not None

    async def test_cancel_returns_stock(self, client: AsyncClient, seeded_db, order_payload, load_product):
        created = (await client.post("/api/v1/orders", json=order_payload(("P-3", 5)))).json()
        assert (await load_product("P-3")).status == "Out of Stock"

        await client.put(f"/api/v1/orders/{created['id']}", json={"status": "Cancelled"})
        product = await load_product("P-3")
        assert product.available_quantity == 5
        assert product.status == "Active"

    async def test_delete_does_not_restock(self, client: AsyncClient, seeded_db, order_payload, load_product):
        created = (await client.post("/api/v1/orders", json=order_payload(("P-1", 6)))).json()

        resp = await client.delete(f"/api/v1/orders/{created['id']}")
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Order deleted successfully"}
        assert (await load_product("P-1")).available_quantity == 4
        assert (await client.get(f"/api/v1/orders/{created['id']}")).status_code == 404

    async def test_delete_restocks_when_configured(
        self, client: AsyncClient, seeded_db, order_payload, load_product, monkeypatch
    ):
        monkeypatch.setenv("RESTOCK_ON_ORDER_DELETE", "true")
        get_settings.cache_clear()
        created = (await client.post("/api/v1/orders", json=order_payload(("P-1", 6)))).json()

        await client.delete(f"/api/v1/orders/{created['id']}")
        assert (await load_product("P-1")).available_quantity == 10

    async def test_lineage_survives_lead_deletion(self, client: AsyncClient, seeded_db, order_payload):
        payload = order_payload(("P-2", 1), leadId="L-1", callId="CALL-1")
        created = (await client.post("/api/v1/orders", json=payload)).json()
        assert created["leadId"] == "L-1"

        assert (await client.delete("/api/v1/leads/L-1")).status_code == 200
        assert (await client.delete("/api/v1/call-logs/CALL-1")).status_code == 200

        order = (await client.get(f"/api/v1/orders/{created['id']}")).json()
        assert order["leadId"] is None
        assert order["callId"] is None
        assert order["customerName"] == "Kumar"

    async def test_product_in_use_cannot_be_deleted(self, client: AsyncClient, seeded_db, order_payload):
        await client.post("/api/v1/orders", json=order_payload(("P-1", 1)))
        resp = await client.delete("/api/v1/products/P-1")
        assert resp.status_code == 409

    async def test_order_id_clash_is_conflict(
        self, client: AsyncClient, seeded_db, order_payload, load_product, monkeypatch
    ):
        await client.post("/api/v1/orders", json=order_payload(("P-2", 1)))

        async def _next(db, model):
            return "ORD-1"

        monkeypatch.setattr(identifiers, "next_identifier", _next)
        resp = await client.post("/api/v1/orders", json=order_payload(("P-2", 5)))
        assert resp.status_code == 409
        assert resp.json()["detail"] == "The order conflicts with existing data, please retry"

        assert (await load_product("P-2")).available_quantity == 99
        assert len((await client.get("/api/v1/orders")).json()) == 1
