"""Application entrypoint for the pull request analysis bot."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from app.core.config import settings
from app.core.errors import BotError, ConfigError
from app.dependencies import close_clients, get_credential_provider
from app.routers import analysis, webhook
from app.telemetry import configure_metrics, shutdown_metrics, collect_prometheus_metrics

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fails startup with ConfigError when the app id or private key is missing.
    provider = get_credential_provider()
    _logger.info("GitHub App %s configured; tokens are minted on demand", provider.app_id)
    if settings.github_app_installation_id is None:
        _logger.info("GITHUB_APP_INSTALLATION_ID not set; installations are discovered per repository")
    if not settings.github_webhook_secret:
        _logger.warning("GITHUB_WEBHOOK_SECRET not set; webhook signature validation is skipped")
    configure_metrics()
    yield
    await close_clients()
    shutdown_metrics()


async def bot_error_handler(request: Request, exc: BotError) -> JSONResponse:
    _logger.error("Webhook handling failed: %s", exc)
    status_code = (
        status.HTTP_500_INTERNAL_SERVER_ERROR if isinstance(exc, ConfigError) else status.HTTP_502_BAD_GATEWAY
    )
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": str(exc), "error": exc.__class__.__name__},
    )


def create_app(*, stub_analysis: bool | None = None) -> FastAPI:
    if stub_analysis is None:
        stub_analysis = settings.stub_analysis_enabled
    app = FastAPI(
        title="PR Analysis Bot",
        description="GitHub App that analyzes pull requests on request and publishes the results as a draft PR or comments.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(webhook.router)
    if stub_analysis:
        app.include_router(analysis.router)
    app.add_exception_handler(BotError, bot_error_handler)

    @app.get("/health", tags=["health"])
    def healthcheck() -> dict[str, str]:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    if settings.otel_exporter.lower().strip() == "prometheus":

        @app.get("/metrics", tags=["metrics"])
        def metrics_endpoint() -> PlainTextResponse:
            payload, content_type = collect_prometheus_metrics()
            return PlainTextResponse(payload, media_type=content_type)

    return app


app = create_app()
