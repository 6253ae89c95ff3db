"""Métricas Prometheus del emisor."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

READINGS_SENT = Counter(
    "simulator_readings_sent_total",
    "Readings written to the telemetry socket",
)
READINGS_SKIPPED = Counter(
    "simulator_readings_skipped_total",
    "Send ticks skipped because the socket was not open",
)
CONNECT_ATTEMPTS = Counter(
    "simulator_connect_attempts_total",
    "Outbound WebSocket connection attempts",
    ["status"],  # success, failed
)
RECONNECTS_SCHEDULED = Counter(
    "simulator_reconnects_scheduled_total",
    "Reconnects scheduled after an unexpected socket closure",
)
LIVE_SESSIONS = Gauge(
    "simulator_live_sessions",
    "Sessions currently registered",
)
RECONCILE_RUNS = Counter(
    "simulator_reconcile_runs_total",
    "Reconciliation sweeps",
    ["status"],  # ok, failed
)
