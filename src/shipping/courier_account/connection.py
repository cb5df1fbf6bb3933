"""Courier connection check: command and handler.

Calls the courier with the stored credentials and records the outcome on
the account. This is the only operation that changes whether an account is
usable for bookings.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from shipping.courier import get_courier_registry
from shipping.courier.models import CourierApiError
from shipping.courier_account.account import CourierAccount
from shipping.domain import shipping

logger = structlog.get_logger(__name__)


@shipping.command(part_of="CourierAccount")
class VerifyCourierConnection:
    """Check the account's credentials against the courier."""

    tenant_id = Identifier(required=True)
    account_id = Identifier(required=True)


@shipping.command_handler(part_of=CourierAccount)
class CourierConnectionHandler:
    @handle(VerifyCourierConnection)
    def verify_connection(self, command):
        repo = current_domain.repository_for(CourierAccount)
        account = repo.get_for_tenant(command.tenant_id, command.account_id)
        adapter = get_courier_registry().get(account.courier_type)

        try:
            adapter.validate_credentials(account.credentials())
        except CourierApiError as exc:
            account.mark_disconnected(exc.message)
            logger.warning(
                "Courier credentials rejected",
                tenant_id=str(command.tenant_id),
                account_id=str(account.id),
                courier_type=account.courier_type,
                error=exc.message,
            )
        else:
            account.mark_connected()
            logger.info(
                "Courier account connected",
                tenant_id=str(command.tenant_id),
                account_id=str(account.id),
                courier_type=account.courier_type,
            )

        repo.add(account)
        return account.is_connected
