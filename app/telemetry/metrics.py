"""OpenTelemetry metrics instrumentation helpers."""

from __future__ import annotations

import logging
from typing import Optional

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from app.core.config import settings

_logger = logging.getLogger(__name__)

_metrics_enabled = False
_meter = None
_provider: MeterProvider | None = None
_webhook_counter = None
_workflow_counter = None
_workflow_duration_hist = None
_token_mint_counter = None


def configure_metrics() -> None:
    """Initialise the metrics provider if enabled via settings."""

    global _metrics_enabled, _meter, _provider, _webhook_counter, _workflow_counter, _workflow_duration_hist, _token_mint_counter

    if not settings.otel_enabled:
        return
    if _metrics_enabled:
        return

    exporter_name = settings.otel_exporter.lower().strip()
    metric_readers = []

    if exporter_name == "console":
        exporter = ConsoleMetricExporter()
        metric_readers.append(PeriodicExportingMetricReader(exporter))
    elif exporter_name == "prometheus":
        try:
            from opentelemetry.exporter.prometheus import PrometheusMetricReader  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "Prometheus exporter selected but opentelemetry-exporter-prometheus is not installed."
            ) from exc
        metric_readers.append(PrometheusMetricReader())
    elif exporter_name == "otlp":
        try:
            from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "OTLP exporter selected but opentelemetry-exporter-otlp is not installed."
            ) from exc
        endpoint = settings.otel_otlp_endpoint
        exporter = OTLPMetricExporter(endpoint=endpoint) if endpoint else OTLPMetricExporter()
        metric_readers.append(PeriodicExportingMetricReader(exporter))
    else:
        _logger.warning("Unsupported OTEL exporter '%s'; defaulting to console", exporter_name)
        metric_readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))

    _provider = MeterProvider(metric_readers=metric_readers, resource=Resource.create({"service.name": settings.app_name}))
    metrics.set_meter_provider(_provider)
    _meter = metrics.get_meter("pr_analysis_bot")
    _webhook_counter = _meter.create_counter(
        name="bot.webhook.deliveries",
        unit="1",
        description="Webhook deliveries received, by event and action",
    )
    _workflow_counter = _meter.create_counter(
        name="bot.workflow.runs",
        unit="1",
        description="Analysis workflow runs, by mode and outcome",
    )
    _workflow_duration_hist = _meter.create_histogram(
        name="bot.workflow.duration",
        unit="s",
        description="Analysis workflow duration in seconds",
    )
    _token_mint_counter = _meter.create_counter(
        name="bot.github.installation_token_mints",
        unit="1",
        description="Installation access tokens minted",
    )
    _metrics_enabled = True


def record_webhook_delivery(event: Optional[str], action: Optional[str]) -> None:
    if _metrics_enabled and _webhook_counter is not None:
        _webhook_counter.add(1, {"event": event or "unknown", "action": action or "none"})


def record_workflow_run(mode: str, outcome: str, seconds: Optional[float]) -> None:
    if not _metrics_enabled:
        return
    attributes = {"mode": mode, "outcome": outcome}
    if _workflow_counter is not None:
        _workflow_counter.add(1, attributes)
    if _workflow_duration_hist is not None and seconds is not None:
        _workflow_duration_hist.record(max(seconds, 0.0), attributes)


def increment_token_mint() -> None:
    if _metrics_enabled and _token_mint_counter is not None:
        _token_mint_counter.add(1)


def collect_prometheus_metrics() -> tuple[bytes, str]:
    try:
        from prometheus_client import CONTENT_TYPE_LATEST, generate_latest  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("Prometheus exposition requires prometheus-client.") from exc
    return generate_latest(), CONTENT_TYPE_LATEST


def shutdown_metrics() -> None:
    global _metrics_enabled, _provider
    if _metrics_enabled and _provider is not None:
        try:
            _provider.shutdown()
        except Exception:  # pragma: no cover
            _logger.exception("Failed to shutdown metrics provider")
        finally:
            _metrics_enabled = False
            _provider = None
