"""CourierAccount aggregate: a tenant's credentials for one courier.

Shipment services only read accounts. The sole write path here is the
connection check, which records whether the credentials still work.
"""

import json
from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from shipping.courier.models import CourierCredentials, CourierType
from shipping.courier_account.events import (
    CourierAccountConnected,
    CourierAccountDisconnected,
    CourierAccountRegistered,
)
from shipping.domain import shipping


@shipping.aggregate
class CourierAccount:
    tenant_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    courier_type = String(required=True, choices=CourierType)
    is_active = Boolean(default=False)
    is_default = Boolean(default=False)
    is_connected = Boolean(default=False)
    priority = Integer(default=100, min_value=0)
    supports_cod = Boolean(default=True)

    api_key = String(max_length=500)
    api_secret = String(max_length=500)
    access_token = String(max_length=2000)
    account_id = String(max_length=100)
    channel_id = String(max_length=100)
    settings = Text()  # JSON object, e.g. {"pickup_location": "Primary"}

    last_connected_at = DateTime()
    last_error = String(max_length=1000)
    created_at = DateTime()
    updated_at = DateTime()
    deleted_at = DateTime()

    @classmethod
    def register(
        cls,
        tenant_id: str,
        name: str,
        courier_type: str,
        credentials: dict | None = None,
        settings: dict | None = None,
        is_default: bool = False,
        priority: int = 100,
        supports_cod: bool = True,
    ):
        """Create a new, not yet verified, courier account."""
        now = datetime.now(UTC)
        credentials = credentials or {}
        account = cls(
            tenant_id=tenant_id,
            name=name,
            courier_type=courier_type,
            is_default=is_default,
            priority=priority,
            supports_cod=supports_cod,
            api_key=credentials.get("api_key"),
            api_secret=credentials.get("api_secret"),
            access_token=credentials.get("access_token"),
            account_id=credentials.get("account_id"),
            channel_id=credentials.get("channel_id"),
            settings=json.dumps(settings or {}),
            created_at=now,
            updated_at=now,
        )
        account.raise_(
            CourierAccountRegistered(
                account_id=str(account.id),
                tenant_id=tenant_id,
                courier_type=courier_type,
                name=name,
                registered_at=now,
            )
        )
        return account

    @property
    def is_usable(self) -> bool:
        return bool(self.is_active and self.is_connected and self.deleted_at is None)

    def settings_dict(self) -> dict:
        return json.loads(self.settings) if self.settings else {}

    def credentials(self) -> CourierCredentials:
        return CourierCredentials(
            api_key=self.api_key,
            api_secret=self.api_secret,
            access_token=self.access_token,
            account_id=self.account_id,
            channel_id=self.channel_id,
            settings=self.settings_dict(),
        )

    def mark_connected(self) -> None:
        now = datetime.now(UTC)
        self.is_connected = True
        self.is_active = True
        self.last_connected_at = now
        self.last_error = None
        self.updated_at = now
        self.raise_(
            CourierAccountConnected(
                account_id=str(self.id),
                tenant_id=str(self.tenant_id),
                courier_type=self.courier_type,
                connected_at=now,
            )
        )

    def mark_disconnected(self, error: str) -> None:
        now = datetime.now(UTC)
        self.is_connected = False
        self.last_error = error
        self.updated_at = now
        self.raise_(
            CourierAccountDisconnected(
                account_id=str(self.id),
                tenant_id=str(self.tenant_id),
                courier_type=self.courier_type,
                error=error,
                disconnected_at=now,
            )
        )
