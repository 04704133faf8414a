"""
Identifier Tests — prefixed, monotonically numbered ids.
"""

import pytest

from crm import identifiers
from crm.errors import ConflictError
from crm.identifiers import add_with_identifier, format_identifier, next_identifier, parse_suffix
from db.models import Lead, Order, Product
from tests.factories import make_product


def test_format_and_parse():
    assert format_identifier("ORD", 12) == "ORD-12"
    assert parse_suffix("ORD-12", "ORD") == 12
    assert parse_suffix("CALL-001", "CALL") == 1


def test_parse_rejects_foreign_ids():
    assert parse_suffix("P001", "P") is None
    assert parse_suffix("ORD-abc", "ORD") is None
    assert parse_suffix("L-5", "ORD") is None


async def test_first_identifier_starts_at_one(session_factory):
    async with session_factory() as db:
        assert await next_identifier(db, Order) == "ORD-1"
        assert await next_identifier(db, Lead) == "L-1"


async def test_next_identifier_follows_largest_numeric_suffix(session_factory):
    async with session_factory() as db:
        db.add(make_product("P-2", 1, 0))
        db.add(make_product("P-10", 1, 0))
        db.add(make_product("P007", 1, 0))
        await db.commit()

    async with session_factory() as db:
        assert await next_identifier(db, Product) == "P-11"


def _hand_out(monkeypatch, *taken):
    """Return the given ids first, then fall back to the real allocator."""
    pending = list(taken)
    real = identifiers.next_identifier

    async def _next(db, model):
        if pending:
            return pending.pop(0)
        return await real(db, model)

    monkeypatch.setattr(identifiers, "next_identifier", _next)


async def test_add_with_identifier_skips_a_taken_id(session_factory, monkeypatch):
    async with session_factory() as db:
        db.add(make_product("P-1", 1, 0))
        await db.commit()

    _hand_out(monkeypatch, "P-1")
    async with session_factory() as db:
        product = await add_with_identifier(db, Product, lambda pid: make_product(pid, 3, 1))
        await db.commit()
        assert product.id == "P-2"

    async with session_factory() as db:
        assert (await db.get(Product, "P-1")).available_quantity == 1
        assert (await db.get(Product, "P-2")).available_quantity == 3


async def test_add_with_identifier_gives_up_after_repeated_clashes(session_factory, monkeypatch):
    async with session_factory() as db:
        db.add(make_product("P-1", 1, 0))
        await db.commit()

    _hand_out(monkeypatch, *["P-1"] * identifiers.ID_ATTEMPTS)
    async with session_factory() as db:
        with pytest.raises(ConflictError, match="please retry"):
            await add_with_identifier(db, Product, lambda pid: make_product(pid, 3, 1))


async def test_other_constraint_failures_are_conflicts(session_factory):
    async with session_factory() as db:
        with pytest.raises(ConflictError, match="Price rejected"):
            await add_with_identifier(
                db,
                Product,
                lambda pid: make_product(pid, 3, 1, price="-1.00"),
                conflict_message="Price rejected",
            )

        # the savepoint is gone; the outer transaction is still usable
        product = await add_with_identifier(db, Product, lambda pid: make_product(pid, 3, 1))
        await db.commit()
        assert product.id == "P-1"
