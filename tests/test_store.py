"""Transactional store tests — commit/rollback, storage errors and balance locks."""

from __future__ import annotations

import asyncio
import gc
import uuid

import pytest
from sqlalchemy import select, text

from timeoff.auth.models import User
from timeoff.common.constants import LeaveType
from timeoff.common.exceptions import DatabaseError, NotFoundException
from tests.conftest import _make_user


async def test_transaction_commits_on_exit(store):
    user = User(**_make_user(name="Committed"))
    async with store.transaction() as db:
        db.add(user)

    async with store.transaction() as db:
        assert (await db.get(User, user.id)).name == "Committed"


async def test_transaction_rolls_back_on_error(store):
    user = User(**_make_user(name="Rolled Back"))
    with pytest.raises(NotFoundException):
        async with store.transaction() as db:
            db.add(user)
            await db.flush()
            raise NotFoundException("Thing", "x")

    async with store.transaction() as db:
        assert await db.get(User, user.id) is None


async def test_storage_failure_becomes_database_error(store):
    with pytest.raises(DatabaseError) as exc_info:
        async with store.transaction() as db:
            await db.execute(text("SELECT * FROM no_such_table"))

    assert exc_info.value.status_code == 500
    assert exc_info.value.code == "DATABASE_ERROR"


async def test_unique_violation_becomes_database_error(store, employee):
    clash = User(**_make_user(email=employee.email))
    with pytest.raises(DatabaseError):
        async with store.transaction() as db:
            db.add(clash)


async def test_execute_returns_result(store, employee):
    async def _names(db):
        return (await db.execute(select(User.name))).scalars().all()

    assert await store.execute(_names) == [employee.name]


async def test_balance_lock_serialises_same_key(store):
    user_id = uuid.uuid4()
    order: list[str] = []

    async def _worker(name: str) -> None:
        async with store.balance_lock(user_id, 2025, LeaveType.VACATION):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(_worker("a"), _worker("b"))

    assert order in (
        ["a-in", "a-out", "b-in", "b-out"],
        ["b-in", "b-out", "a-in", "a-out"],
    )


async def test_balance_lock_keys_are_independent(store):
    user_id = uuid.uuid4()
    async with store.balance_lock(user_id, 2025, LeaveType.VACATION):
        # A different leave type is not blocked by the held lock
        await asyncio.wait_for(_acquire(store, user_id, LeaveType.SICK), timeout=1)


async def _acquire(store, user_id, leave_type, year: int = 2025) -> None:
    async with store.balance_lock(user_id, year, leave_type):
        pass


async def test_released_balance_locks_are_dropped(store):
    user_id = uuid.uuid4()
    for year in range(2020, 2030):
        await _acquire(store, user_id, LeaveType.VACATION, year)
        await _acquire(store, user_id, LeaveType.SICK, year)
    gc.collect()

    assert len(store._locks) == 0


async def test_waiters_share_the_lock_while_it_is_held(store):
    user_id = uuid.uuid4()
    async with store.balance_lock(user_id, 2025, LeaveType.VACATION):
        waiter = asyncio.create_task(_acquire(store, user_id, LeaveType.VACATION))
        await asyncio.sleep(0)
        assert not waiter.done()
        assert len(store._locks) == 1
    await waiter
