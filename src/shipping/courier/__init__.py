"""Courier adapter abstraction: pluggable courier integrations keyed by courier type."""

from shipping import settings
from shipping.courier.models import CourierType
from shipping.courier.port import CourierAdapter


class CourierRegistry:
    """Maps each ``CourierType`` to the adapter that talks to that courier."""

    def __init__(self, adapters: dict[CourierType, CourierAdapter] | None = None):
        self._adapters: dict[CourierType, CourierAdapter] = dict(adapters or {})

    def register(self, adapter: CourierAdapter) -> None:
        self._adapters[adapter.courier_type] = adapter

    def get(self, courier_type: CourierType | str) -> CourierAdapter:
        key = CourierType(courier_type)
        try:
            return self._adapters[key]
        except KeyError:
            raise LookupError(f"No courier adapter registered for {key.value}") from None

    def __contains__(self, courier_type) -> bool:
        return CourierType(courier_type) in self._adapters

    def courier_types(self) -> list[CourierType]:
        return list(self._adapters)


_registry_instance = None


def build_registry(adapter: str) -> CourierRegistry:
    if adapter == "fake":
        from shipping.courier.fake_adapter import FakeCourier

        return CourierRegistry({ct: FakeCourier(ct) for ct in CourierType})
    raise ValueError(f"Unknown courier adapter: {adapter}")


def get_courier_registry() -> CourierRegistry:
    """Return the process-wide courier registry (singleton).

    Installs fake couriers by default. In production, configure via the
    COURIER_ADAPTER environment variable.
    """
    global _registry_instance
    if _registry_instance is None:
        _registry_instance = build_registry(settings.courier_adapter())
    return _registry_instance


def reset_courier_registry() -> None:
    """Reset the registry singleton (useful for testing)."""
    global _registry_instance
    _registry_instance = None
