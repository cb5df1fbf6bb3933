"""ShipStream: shipment lifecycle and courier integration."""
