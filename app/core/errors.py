"""Exception types raised by the GitHub App and analysis workflow layers."""

from __future__ import annotations


class BotError(Exception):
    """Base exception for bot failures."""


class ConfigError(BotError):
    """Raised when credential material or required configuration is missing."""


class NotInstalledError(BotError):
    """Raised when no app installation grants access to a repository."""

    def __init__(self, owner: str, repo: str) -> None:
        super().__init__(f"No installation found for repository {owner}/{repo}")
        self.owner = owner
        self.repo = repo


class GitHubApiError(BotError):
    """Raised for non-2xx GitHub responses, timeouts and transport failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        method: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.method = method
        self.path = path

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class AnalysisApiError(BotError):
    """Raised when the analysis collaborator fails or returns a malformed body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(BotError):
    """Raised when a request is rejected locally before reaching GitHub."""


class WebhookPayloadError(BotError):
    """Raised when a recognised webhook delivery does not match its payload schema."""

    def __init__(self, event: str, errors: list[dict]) -> None:
        super().__init__(f"Malformed {event} payload")
        self.event = event
        self.errors = errors
