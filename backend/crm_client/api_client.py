"""
Renuga CRM API Client

Async HTTP client for the CRM REST API. Reads are retried on transport
failures; writes are sent once so a retry can never double-allocate stock.
"""

from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import get_settings

logger = structlog.get_logger()

API_PREFIX = "/api/v1"

RESOURCES = {
    "call_logs": "call-logs",
    "leads": "leads",
    "orders": "orders",
    "products": "products",
    "tasks": "tasks",
    "customers": "customers",
    "users": "users",
    "shift_notes": "shift-notes",
    "remark_logs": "remark-logs",
}


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return response.reason_phrase


class CRMApiClient:
    """Client for the CRM REST API."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout if timeout is not None else get_settings().client_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "CRMApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._client.request(method, f"{API_PREFIX}{path}", headers=self._headers(), **kwargs)
        if response.is_error:
            detail = _error_detail(response)
            logger.warning("crm_client.request_failed", method=method, path=path, status=response.status_code, detail=detail)
            raise ApiError(response.status_code, detail)
        return response.json()

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=0.5, max=5),
        reraise=True,
    )
    async def _get(self, path: str, params: dict | None = None) -> Any:
        return await self._request("GET", path, params=params)

    @staticmethod
    def _path(resource: str) -> str:
        try:
            return f"/{RESOURCES[resource]}"
        except KeyError:
            raise ValueError(f"Unknown resource: {resource}") from None

    # ── Auth ──────────────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> dict:
        """Log in and keep the bearer token for subsequent calls."""
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    async def validate(self) -> dict:
        data = await self._get("/auth/validate")
        return data["user"]

    async def logout(self) -> None:
        if self.token:
            await self._request("POST", "/auth/logout")
        self.token = None

    # ── Resources ─────────────────────────────────────────────────────────

    async def list(self, resource: str, **params) -> list[dict]:
        query = {key: value for key, value in params.items() if value is not None}
        return await self._get(self._path(resource), params=query or None)

    async def get(self, resource: str, record_id: str) -> dict:
        return await self._get(f"{self._path(resource)}/{record_id}")

    async def create(self, resource: str, payload: dict) -> dict:
        return await self._request("POST", self._path(resource), json=payload)

    async def update(self, resource: str, record_id: str, changes: dict) -> dict:
        return await self._request("PUT", f"{self._path(resource)}/{record_id}", json=changes)

    async def delete(self, resource: str, record_id: str) -> dict:
        return await self._request("DELETE", f"{self._path(resource)}/{record_id}")

    async def convert_lead(self, lead_id: str, payload: dict) -> dict:
        return await self._request("POST", f"/leads/{lead_id}/convert", json=payload)

    async def complete_task(self, task_id: str) -> dict:
        return await self._request("POST", f"/tasks/{task_id}/complete")

    async def dashboard_stats(self) -> dict:
        return await self._get("/dashboard/stats")
