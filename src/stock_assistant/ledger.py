"""Per-user stock ledger backed by the relational store."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from enum import Enum
from typing import Optional, Tuple
from weakref import WeakValueDictionary

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .errors import StorageError
from .models import StockEntry
from .schemas import StockLine

logger = logging.getLogger(__name__)


class UpsertOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"


async def _upsert_in_transaction(
    session: AsyncSession, *, user_id: int, product: str, quantity: int
) -> Tuple[UpsertOutcome, int]:
    stmt = (
        select(StockEntry.quantity)
        .where(StockEntry.user_id == user_id, StockEntry.product == product)
        .with_for_update()
    )
    result = await session.execute(stmt)
    current = result.scalar_one_or_none()
    if current is None:
        session.add(StockEntry(user_id=user_id, product=product, quantity=quantity))
        await session.flush()
        return UpsertOutcome.INSERTED, quantity

    await session.execute(
        update(StockEntry)
        .where(StockEntry.user_id == user_id, StockEntry.product == product)
        .values(quantity=StockEntry.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    return UpsertOutcome.UPDATED, current + quantity


class StockLedger:
    """Owns the lifecycle of :class:`StockEntry` rows.

    Upserts for the same ``(user_id, product)`` pair are serialized through
    an :class:`asyncio.Lock` so concurrent dispatch never loses an update.
    Across processes the row lock taken by ``SELECT ... FOR UPDATE`` and the
    in-SQL increment keep the accumulated quantity consistent.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._locks: WeakValueDictionary[Tuple[int, str], asyncio.Lock] = WeakValueDictionary()

    def _lock_for(self, user_id: int, product: str) -> asyncio.Lock:
        key = (user_id, product)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def upsert(self, user_id: int, product: str, quantity: int) -> UpsertOutcome:
        """Add ``quantity`` units of ``product`` to the user's stock.

        Inserts the entry on first use, otherwise accumulates onto the stored
        quantity. Any store failure is raised as :class:`StorageError`.
        """

        if quantity < 0:
            raise ValueError("Quantity to add cannot be negative.")

        lock = self._lock_for(user_id, product)
        async with lock:
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        outcome, total = await _upsert_in_transaction(
                            session, user_id=user_id, product=product, quantity=quantity
                        )
            except SQLAlchemyError as exc:
                logger.error(
                    "Could not add %d %r to the stock of user %s: %s",
                    quantity,
                    product,
                    user_id,
                    exc,
                )
                raise StorageError(f"Upsert failed for user {user_id}") from exc

        if outcome is UpsertOutcome.INSERTED:
            logger.info("Product %r added to the stock of user %s.", product, user_id)
        else:
            logger.info(
                "Product %r updated. New quantity: %d for user %s.", product, total, user_id
            )
        return outcome

    async def get_quantity(self, user_id: int, product: str) -> Optional[int]:
        stmt = select(StockEntry.quantity).where(
            StockEntry.user_id == user_id, StockEntry.product == product
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Could not read %r for user %s: %s", product, user_id, exc)
            raise StorageError(f"Lookup failed for user {user_id}") from exc

    async def list_entries(self, user_id: int) -> Sequence[StockLine]:
        """Return every product owned by ``user_id`` ordered by name."""

        stmt = (
            select(StockEntry)
            .where(StockEntry.user_id == user_id)
            .order_by(StockEntry.product)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                entries = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error("Could not list the stock of user %s: %s", user_id, exc)
            raise StorageError(f"Listing failed for user {user_id}") from exc
        return [StockLine.model_validate(entry) for entry in entries]


__all__ = ["StockLedger", "UpsertOutcome"]
