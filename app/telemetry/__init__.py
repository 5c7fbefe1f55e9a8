"""Telemetry utilities for exporting bot metrics."""

from .metrics import (
    configure_metrics,
    record_webhook_delivery,
    record_workflow_run,
    increment_token_mint,
    shutdown_metrics,
    collect_prometheus_metrics,
)

__all__ = [
    "configure_metrics",
    "record_webhook_delivery",
    "record_workflow_run",
    "increment_token_mint",
    "shutdown_metrics",
    "collect_prometheus_metrics",
]
