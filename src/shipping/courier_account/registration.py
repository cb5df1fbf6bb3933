"""Courier account registration: command and handler."""

import json

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from shipping.courier.models import CourierType
from shipping.courier_account.account import CourierAccount
from shipping.domain import shipping

logger = structlog.get_logger(__name__)


@shipping.command(part_of="CourierAccount")
class RegisterCourierAccount:
    """Register a tenant's credentials for a courier."""

    tenant_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    courier_type = String(required=True, choices=CourierType)
    api_key = String(max_length=500)
    api_secret = String(max_length=500)
    access_token = String(max_length=2000)
    account_id = String(max_length=100)
    channel_id = String(max_length=100)
    settings = Text()  # JSON object
    is_default = Boolean(default=False)
    priority = Integer(default=100)
    supports_cod = Boolean(default=True)


@shipping.command_handler(part_of=CourierAccount)
class CourierAccountRegistrationHandler:
    @handle(RegisterCourierAccount)
    def register_account(self, command):
        repo = current_domain.repository_for(CourierAccount)

        if command.is_default:
            # Only one default per tenant
            for other in repo.for_tenant(command.tenant_id):
                if other.is_default:
                    other.is_default = False
                    repo.add(other)

        account = CourierAccount.register(
            tenant_id=command.tenant_id,
            name=command.name,
            courier_type=command.courier_type,
            credentials={
                "api_key": command.api_key,
                "api_secret": command.api_secret,
                "access_token": command.access_token,
                "account_id": command.account_id,
                "channel_id": command.channel_id,
            },
            settings=json.loads(command.settings) if command.settings else {},
            is_default=command.is_default,
            priority=command.priority,
            supports_cod=command.supports_cod,
        )
        repo.add(account)
        logger.info(
            "Courier account registered",
            tenant_id=str(command.tenant_id),
            account_id=str(account.id),
            courier_type=command.courier_type,
        )
        return str(account.id)
