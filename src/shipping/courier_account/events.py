"""Courier account domain events."""

from protean.fields import DateTime, Identifier, String

from shipping.domain import shipping


@shipping.event(part_of="CourierAccount")
class CourierAccountRegistered:
    """A tenant registered credentials for a courier."""

    __version__ = 1

    account_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    courier_type = String(required=True)
    name = String(required=True)
    registered_at = DateTime(required=True)


@shipping.event(part_of="CourierAccount")
class CourierAccountConnected:
    """The courier accepted the account's credentials."""

    __version__ = 1

    account_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    courier_type = String(required=True)
    connected_at = DateTime(required=True)


@shipping.event(part_of="CourierAccount")
class CourierAccountDisconnected:
    """The courier rejected the account's credentials."""

    __version__ = 1

    account_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    courier_type = String(required=True)
    error = String(required=True)
    disconnected_at = DateTime(required=True)
