"""Courier account selection for booking, quoting and AWB assignment."""

import structlog
from protean.utils.globals import current_domain

from shipping.courier_account.account import CourierAccount
from shipping.errors import CourierAccountNotFound, CourierAccountUnavailable

logger = structlog.get_logger(__name__)


def _ensure_usable(account: CourierAccount) -> CourierAccount:
    if not account.is_active:
        raise CourierAccountUnavailable(f"Courier account {account.name} is not active")
    if not account.is_connected:
        raise CourierAccountUnavailable(f"Courier account {account.name} is not connected")
    return account


def resolve_booking_account(
    tenant_id: str,
    account_id: str | None = None,
    courier_type: str | None = None,
) -> CourierAccount:
    """Pick the account a new booking goes through.

    An explicit account wins and must be usable as-is. Otherwise the best
    usable account of the requested courier type is taken, and with no courier
    type at all the tenant's default account.
    """
    repo = current_domain.repository_for(CourierAccount)

    if account_id:
        return _ensure_usable(repo.get_for_tenant(tenant_id, account_id))

    candidates = repo.usable(tenant_id, courier_type)
    if courier_type:
        if not candidates:
            raise CourierAccountUnavailable(f"No active courier account found for {courier_type}")
        return candidates[0]

    defaults = [a for a in candidates if a.is_default]
    if not defaults:
        raise CourierAccountUnavailable("No courier selected and no default courier account is configured")
    return defaults[0]


def resolve_account_for_shipment(
    tenant_id: str,
    courier_type: str,
    preferred_account_id: str | None = None,
) -> CourierAccount:
    """Account for follow-up calls on a booked shipment.

    Prefers the account that made the booking while it is still usable.
    """
    repo = current_domain.repository_for(CourierAccount)

    if preferred_account_id:
        try:
            account = repo.get_for_tenant(tenant_id, preferred_account_id)
        except CourierAccountNotFound:
            account = None
        if account is not None and account.is_usable:
            return account
        logger.info(
            "Booking account no longer usable, falling back",
            tenant_id=tenant_id,
            account_id=preferred_account_id,
            courier_type=courier_type,
        )

    candidates = repo.usable(tenant_id, courier_type)
    if not candidates:
        raise CourierAccountUnavailable(f"No active courier account found for {courier_type}")
    return candidates[0]
