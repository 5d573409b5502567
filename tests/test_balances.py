"""Balance ledger tests — create-on-read defaults, deduct/restore/credit,
both storage layouts, and the balance audit trail.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from timeoff.balances.models import AggregatedBalance, TimeOffBalance
from timeoff.balances.service import BalanceLedger
from timeoff.common.constants import AuditAction, AuditEntity, LeaveType
from timeoff.common.exceptions import InsufficientBalanceError, NotFoundException

BOTH_LAYOUTS = pytest.mark.parametrize(
    "balance_schema", ["per_type", "aggregated"], indirect=True,
)


# ═════════════════════════════════════════════════════════════════════
# Create-on-read
# ═════════════════════════════════════════════════════════════════════


@BOTH_LAYOUTS
class TestGetBalance:

    async def test_first_read_creates_default_allotment(self, ledger, employee):
        balance = await ledger.get_balance(employee.id, 2025, LeaveType.VACATION)

        assert balance.total_days == Decimal("22")
        assert balance.used_days == Decimal("0")
        assert balance.remaining_days == Decimal("22")

    async def test_get_balances_returns_every_leave_type(self, ledger, employee):
        balances = await ledger.get_balances(employee.id, 2025)

        by_type = {b.leave_type: b.remaining_days for b in balances}
        assert by_type == {
            LeaveType.VACATION: Decimal("22"),
            LeaveType.SICK: Decimal("8"),
            LeaveType.PAID_LEAVE: Decimal("0"),
            LeaveType.PERSONAL: Decimal("3"),
        }

    async def test_repeated_reads_reuse_the_row(self, ledger, employee, db):
        await ledger.get_balance(employee.id, 2025, LeaveType.SICK)
        await ledger.get_balance(employee.id, 2025, LeaveType.SICK)
        await ledger.get_balance(employee.id, 2025, LeaveType.VACATION)

        per_type = (await db.execute(select(TimeOffBalance))).scalars().all()
        aggregated = (await db.execute(select(AggregatedBalance))).scalars().all()
        assert len(per_type) + len(aggregated) in (1, 2)
        assert len(aggregated) <= 1

    async def test_years_are_independent(self, ledger, employee):
        await ledger.deduct_balance(employee.id, 2025, LeaveType.VACATION, Decimal("5"), "x")

        other = await ledger.get_balance(employee.id, 2026, LeaveType.VACATION)
        assert other.remaining_days == Decimal("22")

    async def test_unknown_user_raises_not_found(self, ledger):
        with pytest.raises(NotFoundException):
            await ledger.get_balance(uuid.uuid4(), 2025, LeaveType.VACATION)


async def test_custom_allotments(store, audit, employee):
    ledger = BalanceLedger(
        store,
        audit=audit,
        allotments={
            LeaveType.VACATION: Decimal("10"),
            LeaveType.SICK: Decimal("5"),
            LeaveType.PAID_LEAVE: Decimal("2"),
            LeaveType.PERSONAL: Decimal("1"),
        },
    )
    balance = await ledger.get_balance(employee.id, 2025, LeaveType.PAID_LEAVE)
    assert balance.remaining_days == Decimal("2")


# ═════════════════════════════════════════════════════════════════════
# Deduct / restore / credit
# ═════════════════════════════════════════════════════════════════════


@BOTH_LAYOUTS
class TestMutations:

    async def test_deduct_reduces_remaining(self, ledger, employee):
        balance = await ledger.deduct_balance(
            employee.id, 2025, LeaveType.VACATION, Decimal("5"), "manual",
        )

        assert balance.remaining_days == Decimal("17")
        assert balance.remaining_days == balance.total_days - balance.used_days

    async def test_deduct_exact_remaining_reaches_zero(self, ledger, employee):
        balance = await ledger.deduct_balance(
            employee.id, 2025, LeaveType.PERSONAL, Decimal("3"), "manual",
        )
        assert balance.remaining_days == Decimal("0")

    async def test_deduct_beyond_remaining_raises_and_leaves_balance(self, ledger, employee):
        with pytest.raises(InsufficientBalanceError) as exc_info:
            await ledger.deduct_balance(
                employee.id, 2025, LeaveType.PERSONAL, Decimal("4"), "manual",
            )

        assert exc_info.value.message == "Insufficient PERSONAL days. Required: 4, Available: 3"
        assert exc_info.value.code == "INSUFFICIENT_BALANCE"
        balance = await ledger.get_balance(employee.id, 2025, LeaveType.PERSONAL)
        assert balance.remaining_days == Decimal("3")

    async def test_deduct_then_restore_round_trips(self, ledger, employee):
        before = await ledger.get_balance(employee.id, 2025, LeaveType.SICK)
        await ledger.deduct_balance(employee.id, 2025, LeaveType.SICK, Decimal("2.5"), "a")
        after = await ledger.restore_balance(employee.id, 2025, LeaveType.SICK, Decimal("2.5"), "b")

        assert after.remaining_days == before.remaining_days
        assert after.used_days == before.used_days
        assert after.total_days == before.total_days

    async def test_restore_never_fails_sufficiency_check(self, ledger, employee):
        balance = await ledger.restore_balance(
            employee.id, 2025, LeaveType.PAID_LEAVE, Decimal("2"), "correction",
        )
        assert balance.remaining_days == Decimal("2")

    async def test_credit_grows_total_and_remaining(self, ledger, employee):
        balance = await ledger.credit_balance(
            employee.id, 2025, LeaveType.VACATION, Decimal("2.5"), "overtime",
        )

        assert balance.total_days == Decimal("24.5")
        assert balance.remaining_days == Decimal("24.5")
        assert balance.used_days == Decimal("0")

    async def test_fractional_days_are_kept(self, ledger, employee):
        await ledger.credit_balance(
            employee.id, 2025, LeaveType.VACATION, Decimal("0.125"), "one hour",
        )
        balance = await ledger.get_balance(employee.id, 2025, LeaveType.VACATION)
        assert balance.remaining_days == Decimal("22.125")

    async def test_deduct_for_unknown_user_raises_not_found(self, ledger):
        with pytest.raises(NotFoundException):
            await ledger.deduct_balance(uuid.uuid4(), 2025, LeaveType.VACATION, Decimal("1"), "x")

    async def test_returned_balance_matches_stored_row(self, ledger, employee):
        deducted = await ledger.deduct_balance(
            employee.id, 2025, LeaveType.VACATION, Decimal("2"), "manual",
        )
        assert deducted == await ledger.get_balance(employee.id, 2025, LeaveType.VACATION)

        credited = await ledger.credit_balance(
            employee.id, 2025, LeaveType.SICK, Decimal("1"), "ot",
        )
        assert credited == await ledger.get_balance(employee.id, 2025, LeaveType.SICK)


@pytest.mark.parametrize("balance_schema", ["aggregated"], indirect=True)
async def test_manual_deduct_lowers_aggregated_total(ledger, employee):
    balance = await ledger.deduct_balance(
        employee.id, 2025, LeaveType.VACATION, Decimal("2"), "manual",
    )

    assert balance.remaining_days == Decimal("20")
    assert balance.used_days == Decimal("0")
    assert balance.total_days == Decimal("20")


# ═════════════════════════════════════════════════════════════════════
# Balance audit entries
# ═════════════════════════════════════════════════════════════════════


class TestBalanceAudit:

    async def test_deduct_writes_one_balance_entry(self, ledger, audit, employee):
        await ledger.deduct_balance(
            employee.id, 2025, LeaveType.VACATION, Decimal("5"), "manual correction",
        )

        logs = await audit.get_logs(entity_type=AuditEntity.BALANCE)
        assert len(logs) == 1
        entry = logs[0]
        assert entry.action == AuditAction.UPDATE
        assert entry.user_id == employee.id
        assert entry.entity_id == f"{employee.id}:2025:VACATION"
        assert entry.details == {
            "type": "VACATION",
            "previousBalance": 22.0,
            "newBalance": 17.0,
            "change": -5.0,
            "reason": "manual correction",
            "year": 2025,
        }

    async def test_failed_deduct_writes_nothing(self, ledger, audit, employee):
        with pytest.raises(InsufficientBalanceError):
            await ledger.deduct_balance(
                employee.id, 2025, LeaveType.PERSONAL, Decimal("10"), "x",
            )
        assert await audit.get_logs(entity_type=AuditEntity.BALANCE) == []

    async def test_reads_are_not_audited(self, ledger, audit, employee):
        await ledger.get_balances(employee.id, 2025)
        assert await audit.get_logs() == []

    async def test_credit_entry_has_positive_change(self, ledger, audit, employee):
        await ledger.credit_balance(employee.id, 2025, LeaveType.VACATION, Decimal("1.5"), "ot")

        [entry] = await audit.get_logs(entity_type=AuditEntity.BALANCE)
        assert entry.details["change"] == 1.5
        assert entry.details["newBalance"] == 23.5


# ═════════════════════════════════════════════════════════════════════
# Used-days summary
# ═════════════════════════════════════════════════════════════════════


async def test_used_days_summary_without_requests(ledger, employee):
    summary = await ledger.used_days_summary(employee.id, 2025)
    assert summary.used == {lt: Decimal("0") for lt in LeaveType}


async def test_used_days_summary_unknown_user(ledger):
    with pytest.raises(NotFoundException):
        await ledger.used_days_summary(uuid.uuid4(), 2025)
