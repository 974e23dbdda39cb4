"""Transport, connection lifecycle and request/response exchange."""
