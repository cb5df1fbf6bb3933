"""Repository for the CourierAccount aggregate."""

from protean.exceptions import ObjectNotFoundError

from shipping.courier_account.account import CourierAccount
from shipping.domain import shipping
from shipping.errors import CourierAccountNotFound


@shipping.repository(part_of=CourierAccount)
class CourierAccountRepository:
    def get_for_tenant(self, tenant_id: str, account_id: str) -> CourierAccount:
        """Fetch an account, treating other tenants' accounts as missing."""
        try:
            account = self.get(account_id)
        except ObjectNotFoundError:
            raise CourierAccountNotFound(account_id) from None
        if str(account.tenant_id) != str(tenant_id) or account.deleted_at is not None:
            raise CourierAccountNotFound(account_id)
        return account

    def for_tenant(self, tenant_id: str) -> list[CourierAccount]:
        results = self._dao.query.filter(tenant_id=tenant_id).all()
        return [a for a in results.items if a.deleted_at is None]

    def usable(self, tenant_id: str, courier_type: str | None = None) -> list[CourierAccount]:
        """Active, connected accounts, best first: the default, then by ascending priority."""
        accounts = [
            a
            for a in self.for_tenant(tenant_id)
            if a.is_usable and (courier_type is None or a.courier_type == courier_type)
        ]
        return sorted(accounts, key=lambda a: (not a.is_default, a.priority))
