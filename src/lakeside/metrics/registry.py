"""Prometheus metrics registry for device connections."""

import logging
from typing import Final

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

lakeside_packets_sent_total: Final = Counter(
    "lakeside_packets_sent_total",
    "Total fire-and-forget packets sent",
    ["device_id", "outcome"],
)

lakeside_exchange_total: Final = Counter(
    "lakeside_exchange_total",
    "Total request/response exchanges",
    ["device_id", "outcome"],
)

lakeside_exchange_latency_seconds: Final = Histogram(
    "lakeside_exchange_latency_seconds",
    "Request/response round-trip latency in seconds",
    ["device_id"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

lakeside_reconnect_total: Final = Counter(
    "lakeside_reconnect_total",
    "Total reconnect attempts triggered by transport failures",
    ["device_id", "reason"],
)

lakeside_keepalive_total: Final = Counter(
    "lakeside_keepalive_total",
    "Total keep-alive round trips",
    ["device_id", "outcome"],
)

lakeside_connection_state: Final = Gauge(
    "lakeside_connection_state",
    "Connection state (1 connected, 0 disconnected)",
    ["device_id"],
)


def record_packet_sent(device_id: str, outcome: str) -> None:
    lakeside_packets_sent_total.labels(device_id=device_id, outcome=outcome).inc()


def record_exchange(device_id: str, outcome: str) -> None:
    lakeside_exchange_total.labels(device_id=device_id, outcome=outcome).inc()


def record_exchange_latency(device_id: str, seconds: float) -> None:
    lakeside_exchange_latency_seconds.labels(device_id=device_id).observe(seconds)


def record_reconnect(device_id: str, reason: str) -> None:
    lakeside_reconnect_total.labels(device_id=device_id, reason=reason).inc()


def record_keepalive(device_id: str, outcome: str) -> None:
    lakeside_keepalive_total.labels(device_id=device_id, outcome=outcome).inc()


def record_connection_state(device_id: str, connected: bool) -> None:
    lakeside_connection_state.labels(device_id=device_id).set(1 if connected else 0)


def start_metrics_server(port: int) -> None:
    """Expose metrics over HTTP on the given port (daemon thread)."""
    start_http_server(port)
    logger.info("Metrics server listening on :%d", port, extra={"port": port})
