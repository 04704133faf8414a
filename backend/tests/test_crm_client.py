"""
Client Tests — API client and optimistic store against the ASGI app.
"""

import asyncio

import httpx
import pytest
from httpx import ASGITransport

from api.main import app
from crm_client.api_client import ApiError, CRMApiClient
from crm_client.optimistic import OptimisticStore


@pytest.fixture
async def api(client, seeded_db):
    """CRMApiClient wired to the app, sharing the test client's overrides."""
    async with CRMApiClient("http://test", transport=ASGITransport(app=app), timeout=5) as api_client:
        yield api_client


@pytest.fixture
def toasts():
    return []


@pytest.fixture
def store(api, toasts):
    return OptimisticStore(api, notify=toasts.append)


def _order(*lines, **fields):
    payload = {
        "customerName": "Kumar",
        "mobile": "9876543210",
        "deliveryAddress": "45, Anna Nagar, Trichy",
        "expectedDeliveryDate": "2030-01-05T00:00:00",
        "assignedTo": "Muthu R.",
        "products": [{"productId": pid, "quantity": qty} for pid, qty in lines],
    }
    payload.update(fields)
    return payload


@pytest.mark.asyncio
class TestApiClient:
    async def test_login_keeps_token(self, api):
        user = await api.login("admin@renuga.com", "admin123")
        assert user["role"] == "Admin"
        assert api.token

        await api.logout()
        assert api.token is None

    async def test_error_detail_is_surfaced(self, api):
        with pytest.raises(ApiError) as excinfo:
            await api.get("orders", "ORD-404")
        assert excinfo.value.status_code == 404
        assert excinfo.value.detail == "Order not found"

    async def test_unknown_resource(self, api):
        with pytest.raises(ValueError):
            await api.list("invoices")

    async def test_reads_retry_on_transport_errors(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request.url.path)
            if len(attempts) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=[])

        async with CRMApiClient("http://test", transport=httpx.MockTransport(handler), timeout=1) as api_client:
            assert await api_client.list("products") == []
        assert attempts == ["/api/v1/products"] * 3

    async def test_writes_are_not_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request.method)
            raise httpx.ConnectError("connection refused", request=request)

        async with CRMApiClient("http://test", transport=httpx.MockTransport(handler), timeout=1) as api_client:
            with pytest.raises(httpx.ConnectError):
                await api_client.create("orders", _order(("P-1", 1)))
        assert attempts == ["POST"]


@pytest.mark.asyncio
class TestOptimisticStore:
    async def test_create_replaces_temporary_record(self, store, toasts):
        saved = await store.create("orders", _order(("P-1", 2)))
        assert saved["id"] == "ORD-1"
        assert [o["id"] for o in store.records("orders")] == ["ORD-1"]
        assert store.get("orders", "ORD-1")["totalAmount"] == 90.0
        assert toasts == []

    async def test_rejected_create_is_removed(self, store, toasts):
        assert await store.create("orders", _order(("P-3", 6))) is None
        assert store.records("orders") == []
        assert toasts == ["Insufficient inventory for product Turbo Ventilator"]

    async def test_rejected_update_restores_only_its_fields(self, api, store, toasts):
        await api.create("orders", _order(("P-1", 6)))
        await store.refresh("orders")
        record = store.get("orders", "ORD-1")
        record["localNote"] = "typed but unsaved"

        result = await store.update(
            "orders", "ORD-1", {"remarks": "rush", "products": [{"productId": "P-1", "quantity": 20}]}
        )
        assert result is None
        assert toasts == ["Insufficient inventory for product Color Coated Roofing Sheet"]

        record = store.get("orders", "ORD-1")
        assert record["remarks"] is None
        assert record["products"][0]["quantity"] == 6
        assert record["localNote"] == "typed but unsaved"

    async def test_one_rejection_leaves_other_changes(self, api, store, toasts):
        await api.create("orders", _order(("P-1", 6)))
        await api.create("orders", _order(("P-2", 1)))
        await store.refresh("orders")

        bad, good = await asyncio.gather(
            store.update("orders", "ORD-1", {"products": [{"productId": "P-1", "quantity": 20}]}),
            store.update("orders", "ORD-2", {"remarks": "deliver after 4pm"}),
        )
        assert bad is None
        assert good["remarks"] == "deliver after 4pm"
        assert store.get("orders", "ORD-2")["remarks"] == "deliver after 4pm"
        assert store.get("orders", "ORD-1")["products"][0]["quantity"] == 6
        assert len(toasts) == 1

    async def test_confirmed_update_takes_server_state(self, api, store):
        await api.create("orders", _order(("P-2", 1)))
        await store.refresh("orders")

        await store.update("orders", "ORD-1", {"status": "Delivered", "isDelayed": True})
        record = store.get("orders", "ORD-1")
        assert record["status"] == "Delivered"
        assert record["isDelayed"] is False
        assert record["actualDeliveryDate"] is not None

    async def test_rejected_delete_restores_record(self, api, store, toasts):
        await api.create("orders", _order(("P-1", 1)))
        await store.refresh("products")

        assert await store.delete("products", "P-1") is False
        assert store.get("products", "P-1")["name"] == "Color Coated Roofing Sheet"
        assert toasts == ["Product is referenced by existing orders and cannot be deleted"]

        assert await store.delete("products", "P-2") is True
        assert store.get("products", "P-2") is None

    async def test_unreachable_server(self, toasts):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with CRMApiClient("http://test", transport=httpx.MockTransport(handler), timeout=1) as api_client:
            offline = OptimisticStore(api_client, notify=toasts.append)
            assert await offline.create("tasks", {"type": "Meeting"}) is None
        assert offline.records("tasks") == []
        assert toasts == ["Could not reach the server, change was not saved"]
