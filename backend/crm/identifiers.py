"""
Prefixed identifiers (ORD-1, L-1, CALL-1, ...).

The next number is one more than the largest numeric suffix already used for
the prefix. Generation runs inside the caller's transaction, so two writers
can pick the same number; add_with_identifier() inserts under a SAVEPOINT and
moves on to the next number when another transaction committed it first.
"""

from collections.abc import Callable

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crm.errors import ConflictError

logger = structlog.get_logger()

ID_ATTEMPTS = 5

PREFIXES = {
    "User": "U",
    "Product": "P",
    "Customer": "C",
    "CallLog": "CALL",
    "Lead": "L",
    "Order": "ORD",
    "Task": "T",
    "ShiftNote": "SN",
    "RemarkLog": "RL",
}


def format_identifier(prefix: str, number: int) -> str:
    return f"{prefix}-{number}"


def parse_suffix(identifier: str, prefix: str) -> int | None:
    head = f"{prefix}-"
    if not identifier.startswith(head):
        return None
    suffix = identifier[len(head):]
    return int(suffix) if suffix.isdigit() else None


async def next_identifier(db: AsyncSession, model) -> str:
    prefix = PREFIXES[model.__name__]
    result = await db.execute(select(model.id).where(model.id.like(f"{prefix}-%")))
    numbers = [n for n in (parse_suffix(row, prefix) for row in result.scalars()) if n is not None]
    return format_identifier(prefix, max(numbers, default=0) + 1)


async def add_with_identifier(
    db: AsyncSession,
    model,
    build: Callable[[str], object],
    conflict_message: str = "Record conflicts with existing data, please retry",
):
    """
    Insert ``build(identifier)`` under the next free identifier and return it.

    Only a clash on the identifier itself is retried. Any other constraint
    failure, or running out of attempts, raises ConflictError; the caller's
    transaction stays usable either way.
    """
    for attempt in range(1, ID_ATTEMPTS + 1):
        identifier = await next_identifier(db, model)
        instance = build(identifier)
        try:
            async with db.begin_nested():
                db.add(instance)
                await db.flush()
        except IntegrityError as exc:
            if await db.get(model, identifier) is None:
                logger.warning("storage.integrity_error", model=model.__name__, error=str(exc.orig))
                raise ConflictError(conflict_message) from exc
            logger.warning(
                "identifier.collision",
                model=model.__name__,
                identifier=identifier,
                attempt=attempt,
            )
            continue
        return instance

    raise ConflictError(conflict_message)
