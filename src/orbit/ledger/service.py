"""Balance ledger: atomic credit/debit of a user's balance.

Every mutation is a single relative UPDATE (``balance = balance + :amount``)
so concurrent credits and debits on the same user serialize in the database
instead of racing through read-modify-write in Python. Callers own the
transaction; nothing here commits.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orbit.db.models import User
from orbit.errors import InvalidError, NotFoundError


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidError(f"Amount must be an integer, got {amount!r}")
    if amount < 0:
        raise InvalidError(f"Amount must be non-negative, got {amount}")


async def _apply_delta(db: AsyncSession, user_id: str, delta: int) -> None:
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(balance=User.balance + delta)
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount == 0:
        raise NotFoundError(f"User {user_id} not found")


async def credit(db: AsyncSession, user_id: str, amount: int) -> None:
    """Add ``amount`` points to a user's balance."""
    _check_amount(amount)
    await _apply_delta(db, user_id, amount)


async def debit(db: AsyncSession, user_id: str, amount: int) -> None:
    """Subtract ``amount`` points from a user's balance.

    Not clamped at zero: the balance must always equal the sum of the
    user's active award rewards, so a debit is applied in full.
    """
    _check_amount(amount)
    await _apply_delta(db, user_id, -amount)


async def get_balance(db: AsyncSession, user_id: str) -> int:
    """Read the current committed-or-pending balance straight from the column."""
    result = await db.execute(select(User.balance).where(User.id == user_id))
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFoundError(f"User {user_id} not found")
    return balance
