"""Application dependency wiring."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from app.core.config import settings
from app.github_app import (
    AppCredential,
    CredentialProvider,
    GitHubHttp,
    InstallationResolver,
    RepositoryClient,
    TokenCache,
    build_http_client,
)
from app.services.analysis_api import AnalysisApiClient
from app.services.dispatcher import WebhookDispatcher
from app.services.orchestrator import AnalysisOrchestrator
from app.services.status import CommitStatusReporter


@lru_cache
def get_credential_provider() -> CredentialProvider:
    return CredentialProvider(AppCredential.from_settings(settings))


@lru_cache
def get_github_http() -> GitHubHttp:
    return GitHubHttp(build_http_client(settings.github_api_url, timeout=settings.github_timeout_seconds))


@lru_cache
def get_installation_resolver() -> InstallationResolver:
    return InstallationResolver(
        get_github_http(),
        get_credential_provider(),
        cache_ttl_seconds=settings.installation_cache_ttl_seconds,
    )


@lru_cache
def get_token_cache() -> TokenCache:
    return TokenCache(
        get_installation_resolver(),
        installation_id=settings.github_app_installation_id,
        expiry_buffer=timedelta(seconds=settings.token_expiry_buffer_seconds),
    )


@lru_cache
def get_repository_client() -> RepositoryClient:
    return RepositoryClient(get_github_http(), get_token_cache())


@lru_cache
def get_status_reporter() -> CommitStatusReporter:
    return CommitStatusReporter(
        get_repository_client(),
        context=settings.status_context,
        app_name=settings.app_name,
    )


@lru_cache
def get_analysis_client() -> AnalysisApiClient:
    return AnalysisApiClient(settings.api_base_url, timeout=settings.analysis_timeout_seconds)


@lru_cache
def get_orchestrator() -> AnalysisOrchestrator:
    return AnalysisOrchestrator(
        get_repository_client(),
        get_analysis_client(),
        get_status_reporter(),
        app_name=settings.app_name,
    )


@lru_cache
def get_dispatcher() -> WebhookDispatcher:
    return WebhookDispatcher(get_orchestrator())


async def close_clients() -> None:
    if get_github_http.cache_info().currsize:
        await get_github_http().aclose()
    if get_analysis_client.cache_info().currsize:
        await get_analysis_client().close()
