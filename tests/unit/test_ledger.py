"""Balance ledger tests: credit, debit, lookups and argument checks."""

from __future__ import annotations

import pytest

from conftest import make_user
from orbit.errors import InvalidError, NotFoundError
from orbit.ledger.service import credit, debit, get_balance


class TestCredit:
    @pytest.mark.asyncio
    async def test_credit_adds_to_balance(self, db_session):
        user = await make_user(db_session, balance=5)
        await credit(db_session, user.id, 10)
        await db_session.commit()
        assert await get_balance(db_session, user.id) == 15

    @pytest.mark.asyncio
    async def test_credit_zero_is_noop(self, db_session):
        user = await make_user(db_session, balance=7)
        await credit(db_session, user.id, 0)
        await db_session.commit()
        assert await get_balance(db_session, user.id) == 7

    @pytest.mark.asyncio
    async def test_credit_updates_loaded_object(self, db_session):
        user = await make_user(db_session, balance=1)
        await credit(db_session, user.id, 4)
        assert user.balance == 5

    @pytest.mark.asyncio
    async def test_credit_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await credit(db_session, "00000000-0000-0000-0000-000000000000", 5)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [-1, 1.5, "10", True])
    async def test_credit_rejects_bad_amount(self, db_session, amount):
        user = await make_user(db_session)
        with pytest.raises(InvalidError):
            await credit(db_session, user.id, amount)


class TestDebit:
    @pytest.mark.asyncio
    async def test_debit_subtracts(self, db_session):
        user = await make_user(db_session, balance=30)
        await debit(db_session, user.id, 12)
        await db_session.commit()
        assert await get_balance(db_session, user.id) == 18

    @pytest.mark.asyncio
    async def test_debit_is_not_clamped(self, db_session):
        user = await make_user(db_session, balance=3)
        await debit(db_session, user.id, 10)
        await db_session.commit()
        assert await get_balance(db_session, user.id) == -7

    @pytest.mark.asyncio
    async def test_debit_negative_amount_rejected(self, db_session):
        user = await make_user(db_session, balance=3)
        with pytest.raises(InvalidError):
            await debit(db_session, user.id, -3)

    @pytest.mark.asyncio
    async def test_debit_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await debit(db_session, "missing", 1)


class TestGetBalance:
    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await get_balance(db_session, "missing")

    @pytest.mark.asyncio
    async def test_sequence_of_changes(self, db_session):
        user = await make_user(db_session)
        await credit(db_session, user.id, 10)
        await credit(db_session, user.id, 20)
        await debit(db_session, user.id, 10)
        await db_session.commit()
        assert await get_balance(db_session, user.id) == 20
