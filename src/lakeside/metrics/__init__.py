"""Metrics module."""

from .registry import (
    record_connection_state,
    record_exchange,
    record_exchange_latency,
    record_keepalive,
    record_packet_sent,
    record_reconnect,
    start_metrics_server,
)

__all__ = [
    "record_connection_state",
    "record_exchange",
    "record_exchange_latency",
    "record_keepalive",
    "record_packet_sent",
    "record_reconnect",
    "start_metrics_server",
]
