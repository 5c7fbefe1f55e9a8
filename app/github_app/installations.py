"""Discovery of the app installation that grants access to a repository."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from app.core.errors import GitHubApiError, NotInstalledError
from app.github_app.credentials import CredentialProvider
from app.github_app.http import GitHubHttp
from app.models.domain import Installation
from app.telemetry import increment_token_mint

_logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(raw: str) -> datetime:
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


@dataclass(frozen=True)
class InstallationToken:
    token: str = field(repr=False)
    expires_at: datetime
    installation_id: int | None = None


class InstallationResolver:
    """Lists app installations and maps repositories onto them.

    A repository is attributed to an installation in two stages: the
    installation's account login must match the repository owner
    (case-insensitive), and a token minted for that installation must be able
    to read the repository. An org-wide installation that was not granted a
    particular private repository passes the first check but not the second.
    """

    def __init__(
        self,
        http: GitHubHttp,
        credentials: CredentialProvider,
        *,
        cache_ttl_seconds: int = 600,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self._http = http
        self._credentials = credentials
        self._cache_ttl = timedelta(seconds=max(cache_ttl_seconds, 0))
        self._clock = clock
        self._installations: list[Installation] | None = None
        self._installations_expire_at: datetime | None = None

    async def list_installations(self) -> list[Installation]:
        now = self._clock()
        if self._installations is not None and self._installations_expire_at and self._installations_expire_at > now:
            _logger.debug("Using cached installations list")
            return self._installations

        assertion = self._credentials.sign()
        installations = [
            Installation(
                id=item["id"],
                account_login=(item.get("account") or {}).get("login", ""),
                account_type=(item.get("account") or {}).get("type"),
            )
            async for item in self._http.paginate(
                "/app/installations", bearer=assertion.token, params={"per_page": 100}
            )
        ]
        self._installations = installations
        self._installations_expire_at = now + self._cache_ttl
        _logger.info("Found %d app installations", len(installations))
        return installations

    async def mint_token(self, installation_id: int) -> InstallationToken:
        assertion = self._credentials.sign()
        path = f"/app/installations/{installation_id}/access_tokens"
        data = await self._http.request_json("POST", path, bearer=assertion.token)
        token = (data or {}).get("token")
        expires_at_raw = (data or {}).get("expires_at")
        if not token or not expires_at_raw:
            raise GitHubApiError(
                "GitHub installation token response missing token or expires_at", method="POST", path=path
            )
        increment_token_mint()
        expires_at = _parse_timestamp(expires_at_raw)
        _logger.info("Minted token for installation %s, expires at %s", installation_id, expires_at.isoformat())
        return InstallationToken(token=token, expires_at=expires_at, installation_id=installation_id)

    async def match_repository(self, owner: str, repo: str) -> tuple[int, InstallationToken]:
        """Return the first installation that can read ``owner/repo`` with its probe token."""
        installations = await self.list_installations()
        for installation in installations:
            if installation.account_login.lower() != owner.lower():
                continue
            try:
                token = await self.mint_token(installation.id)
                await self._http.request("GET", f"/repos/{owner}/{repo}", bearer=token.token)
            except GitHubApiError as exc:
                _logger.warning(
                    "Installation %s matches %s but cannot access %s/%s: %s", installation.id, owner, owner, repo, exc
                )
                continue
            _logger.info("Found installation %s for %s/%s", installation.id, owner, repo)
            return installation.id, token
        raise NotInstalledError(owner, repo)

    async def resolve_for_repo(self, owner: str, repo: str) -> int:
        installation_id, _ = await self.match_repository(owner, repo)
        return installation_id
