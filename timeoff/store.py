"""Transactional store — unit-of-work boundary shared by every service.

The store owns the session factory, the balance storage adapter chosen at
start-up, and the per-balance locks that make read-check-write sequences
on a balance atomic within this process. On PostgreSQL the balance and
request rows are additionally locked with ``SELECT ... FOR UPDATE``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeoff.common.constants import LeaveType
from timeoff.common.exceptions import DatabaseError

if TYPE_CHECKING:
    from timeoff.balances.repository import BalanceRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionalStore:
    """Runs units of work against one ``AsyncSession`` each."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        balances: BalanceRepository,
    ) -> None:
        self.session_factory = session_factory
        self.balances = balances
        # Entries disappear once no coroutine holds or waits on the lock
        self._locks: weakref.WeakValueDictionary[
            tuple[uuid.UUID, int, LeaveType], asyncio.Lock
        ] = weakref.WeakValueDictionary()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside ``BEGIN``; commit on exit, roll back on error.

        Storage failures surface as ``DatabaseError``; every other exception
        propagates unchanged after the rollback.
        """
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except SQLAlchemyError as exc:
                logger.exception("Transaction rolled back after storage failure: %s", exc)
                raise DatabaseError() from exc

    async def execute(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``fn(session)`` in one transaction and return its result."""
        async with self.transaction() as session:
            return await fn(session)

    @asynccontextmanager
    async def balance_lock(
        self,
        user_id: uuid.UUID,
        year: int,
        leave_type: LeaveType,
    ) -> AsyncIterator[None]:
        """Serialise work on one (user, year, type) balance.

        Hold it around the whole transaction, commit included.
        """
        key = (user_id, year, LeaveType(leave_type))
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        async with lock:
            yield
