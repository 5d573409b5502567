"""Composition root — builds the store and services handed to the routers.

The balance storage layout is read from settings here and nowhere else.
Tests override ``get_store`` (and optionally ``get_notifier``) through
``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from timeoff.balances.repository import build_balance_repository
from timeoff.balances.service import BalanceLedger
from timeoff.common.audit import AuditTrail
from timeoff.config import settings
from timeoff.database import async_session_factory
from timeoff.leave.service import TimeOffRequestService
from timeoff.notifications.service import InAppNotifier, Notifier
from timeoff.overtime.service import OvertimeService
from timeoff.store import TransactionalStore


@lru_cache
def get_store() -> TransactionalStore:
    """Process-wide store, so balance locks are shared by every request."""
    return TransactionalStore(
        async_session_factory,
        build_balance_repository(settings.BALANCE_SCHEMA),
    )


def get_notifier(store: TransactionalStore = Depends(get_store)) -> Notifier:
    return InAppNotifier(store)


def get_audit_trail(store: TransactionalStore = Depends(get_store)) -> AuditTrail:
    return AuditTrail(store)


def get_ledger(
    store: TransactionalStore = Depends(get_store),
    audit: AuditTrail = Depends(get_audit_trail),
) -> BalanceLedger:
    return BalanceLedger(store, audit=audit)


def get_request_service(
    store: TransactionalStore = Depends(get_store),
    ledger: BalanceLedger = Depends(get_ledger),
    audit: AuditTrail = Depends(get_audit_trail),
    notifier: Notifier = Depends(get_notifier),
) -> TimeOffRequestService:
    return TimeOffRequestService(store, ledger=ledger, audit=audit, notifier=notifier)


def get_overtime_service(
    store: TransactionalStore = Depends(get_store),
    ledger: BalanceLedger = Depends(get_ledger),
    audit: AuditTrail = Depends(get_audit_trail),
    notifier: Notifier = Depends(get_notifier),
) -> OvertimeService:
    return OvertimeService(store, ledger=ledger, audit=audit, notifier=notifier)
