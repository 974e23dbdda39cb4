"""Device facade, capability registry and cached device state."""
