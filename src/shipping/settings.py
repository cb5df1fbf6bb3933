"""Runtime knobs for the shipping context, read from the environment.

Protean itself is configured through ``domain.toml``; these are the
service-level settings that the application services consult.
"""

import os


def _int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


def _float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


def courier_adapter() -> str:
    """Adapter family installed in the default courier registry."""
    return os.environ.get("COURIER_ADAPTER", "fake")


def retry_max_attempts() -> int:
    return _int("SHIPPING_RETRY_MAX_ATTEMPTS", 5)


def retry_base_delay() -> float:
    """Base backoff delay in seconds."""
    return _int("SHIPPING_RETRY_BASE_DELAY_MS", 100) / 1000


def retry_max_jitter() -> float:
    """Upper bound of the random jitter added to each backoff, in seconds."""
    return _int("SHIPPING_RETRY_MAX_JITTER_MS", 100) / 1000


def default_weight_kg() -> float:
    return _float("SHIPPING_DEFAULT_WEIGHT_KG", 0.5)


def default_package_cm() -> float:
    return _float("SHIPPING_DEFAULT_PACKAGE_CM", 10)


def booking_claim_ttl() -> float:
    """Seconds after which an unfinished booking's claim on an order can be taken over."""
    return _float("SHIPPING_BOOKING_CLAIM_TTL_S", 300)


def retry_policy() -> dict:
    """Keyword arguments for ``retry_on_conflict``, read afresh on every call."""
    return {
        "max_attempts": retry_max_attempts(),
        "base_delay": retry_base_delay(),
        "max_jitter": retry_max_jitter(),
    }
