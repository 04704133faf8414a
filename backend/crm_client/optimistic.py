"""
Optimistic Store — local record cache that applies mutations before the
server confirms them.

Each mutation carries its own apply and undo closures. When the server
rejects a mutation only that mutation is undone, the notify callback gets a
user-facing message, and every other pending or confirmed change stays.
Confirmed responses replace the local record with server state.
"""

import itertools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from crm_client.api_client import ApiError, CRMApiClient

logger = structlog.get_logger()

_MISSING = object()

Notify = Callable[[str], None]


@dataclass
class Mutation:
    kind: str
    resource: str
    record_id: str
    apply: Callable[[], None]
    undo: Callable[[], None]


class OptimisticStore:
    """Per-session cache keyed by resource name and record id."""

    def __init__(self, client: CRMApiClient, notify: Notify | None = None):
        self._client = client
        self._notify = notify or (lambda message: None)
        self._records: dict[str, dict[str, dict]] = {}
        self._temp_ids = itertools.count(1)

    # ── Reads ─────────────────────────────────────────────────────────────

    def records(self, resource: str) -> list[dict]:
        return list(self._records.get(resource, {}).values())

    def get(self, resource: str, record_id: str) -> dict | None:
        return self._records.get(resource, {}).get(record_id)

    async def refresh(self, resource: str, **params) -> list[dict]:
        """Replace the local copy of ``resource`` with what the server holds."""
        rows = await self._client.list(resource, **params)
        self._records[resource] = {row["id"]: row for row in rows}
        return rows

    def _table(self, resource: str) -> dict[str, dict]:
        return self._records.setdefault(resource, {})

    # ── Mutations ─────────────────────────────────────────────────────────

    async def create(self, resource: str, payload: dict) -> dict | None:
        table = self._table(resource)
        temp_id = f"tmp-{next(self._temp_ids)}"

        def apply() -> None:
            table[temp_id] = {**payload, "id": temp_id}

        def undo() -> None:
            table.pop(temp_id, None)

        mutation = Mutation("create", resource, temp_id, apply, undo)
        saved = await self._run(mutation, lambda: self._client.create(resource, payload))
        if saved is not None:
            table.pop(temp_id, None)
            table[saved["id"]] = saved
        return saved

    async def update(self, resource: str, record_id: str, changes: dict) -> dict | None:
        table = self._table(resource)
        record = table.get(record_id)
        if record is None:
            raise KeyError(f"{resource}/{record_id} is not cached")
        previous = {key: record.get(key, _MISSING) for key in changes}

        def apply() -> None:
            record.update(changes)

        def undo() -> None:
            # Only the keys this mutation touched are restored, on whatever
            # copy of the record is current by now.
            current = table.get(record_id)
            if current is None:
                return
            for key, value in previous.items():
                if value is _MISSING:
                    current.pop(key, None)
                else:
                    current[key] = value

        mutation = Mutation("update", resource, record_id, apply, undo)
        saved = await self._run(mutation, lambda: self._client.update(resource, record_id, changes))
        if saved is not None:
            table[record_id] = saved
        return saved

    async def delete(self, resource: str, record_id: str) -> bool:
        table = self._table(resource)
        removed: dict[str, Any] = {}

        def apply() -> None:
            if record_id in table:
                removed["record"] = table.pop(record_id)

        def undo() -> None:
            if "record" in removed:
                table[record_id] = removed["record"]

        mutation = Mutation("delete", resource, record_id, apply, undo)
        return await self._run(mutation, lambda: self._client.delete(resource, record_id)) is not None

    async def _run(self, mutation: Mutation, send: Callable[[], Awaitable[dict]]) -> dict | None:
        mutation.apply()
        try:
            return await send()
        except ApiError as exc:
            mutation.undo()
            logger.warning(
                "optimistic.rejected",
                kind=mutation.kind,
                resource=mutation.resource,
                record_id=mutation.record_id,
                status=exc.status_code,
            )
            self._notify(exc.detail)
            return None
        except httpx.HTTPError as exc:
            mutation.undo()
            logger.warning(
                "optimistic.unreachable",
                kind=mutation.kind,
                resource=mutation.resource,
                record_id=mutation.record_id,
                error=str(exc),
            )
            self._notify("Could not reach the server, change was not saved")
            return None
