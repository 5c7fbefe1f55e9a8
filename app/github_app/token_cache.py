"""Per-repository cache of installation access tokens."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from app.core.errors import GitHubApiError
from app.github_app.installations import InstallationResolver, InstallationToken

_logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_BUFFER = timedelta(minutes=5)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def repo_key(owner: str, repo: str) -> str:
    return f"{owner}/{repo}".lower()


class TokenCache:
    """Hands out installation tokens keyed by ``owner/repo``.

    A cached token is reused until it comes within ``expiry_buffer`` of
    expiring. The repository to installation mapping is filled on first
    resolution and kept for the life of the process.

    Concurrent misses for the same repository may each mint a token; GitHub
    allows several live installation tokens, so the duplicate is only wasted
    quota.
    """

    def __init__(
        self,
        resolver: InstallationResolver,
        *,
        installation_id: int | None = None,
        expiry_buffer: timedelta = DEFAULT_EXPIRY_BUFFER,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self._resolver = resolver
        self._default_installation_id = installation_id
        self._expiry_buffer = expiry_buffer
        self._clock = clock
        self._tokens: dict[str, InstallationToken] = {}
        self._installations: dict[str, int] = {}

    def installation_for(self, owner: str, repo: str) -> int | None:
        return self._installations.get(repo_key(owner, repo), self._default_installation_id)

    def _is_fresh(self, token: InstallationToken) -> bool:
        return token.expires_at > self._clock() + self._expiry_buffer

    async def get_token(self, owner: str, repo: str) -> str:
        key = repo_key(owner, repo)
        cached = self._tokens.get(key)
        if cached and self._is_fresh(cached):
            return cached.token

        installation_id = self.installation_for(owner, repo)
        if installation_id is None:
            installation_id, token = await self._resolver.match_repository(owner, repo)
            self._installations[key] = installation_id
        else:
            token = await self._resolver.mint_token(installation_id)

        if token.expires_at <= self._clock():
            raise GitHubApiError(f"GitHub issued an already expired token for installation {installation_id}")
        self._tokens[key] = token
        _logger.debug("Cached installation token for %s (installation %s)", key, installation_id)
        return token.token
