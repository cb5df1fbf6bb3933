"""Shipping bounded context: Shipment Lifecycle and Courier Integration.

Books physical deliveries with third-party couriers, reconciles each booking
against locally persisted state, exposes deferred courier quoting and AWB
assignment, and drives the delivery state machine whose changes are projected
onto the owning order. Uses CQRS because couriers own the booking and tracking
state; shipments here are the local record of it.
"""

from protean.domain import Domain

shipping = Domain(name="shipping")
