"""Commit status reporting for analysis runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from app.core.errors import BotError, ValidationError
from app.github_app.client import RepositoryClient
from app.models.domain import CommitState

_logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 140
MAX_ERROR_LENGTH = 80
MIN_SHA_LENGTH = 7


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def truncate_error(error: str) -> str:
    if len(error) <= MAX_ERROR_LENGTH:
        return error
    return error[:MAX_ERROR_LENGTH] + "..."


@dataclass(frozen=True)
class StatusOutcome:
    ok: bool
    state: CommitState
    description: str
    error: Optional[str] = None


class CommitStatusReporter:
    """Sets the bot's commit status on the head commit of a pull request."""

    def __init__(self, client: RepositoryClient, *, context: str, app_name: str) -> None:
        self._client = client
        self._context = context
        self._app_name = app_name

    @staticmethod
    def _validate(sha: str, state: CommitState | str) -> CommitState:
        if not sha or len(sha) < MIN_SHA_LENGTH:
            raise ValidationError("Invalid commit SHA")
        try:
            return CommitState(state)
        except ValueError as exc:
            raise ValidationError(f"Invalid state: {state}") from exc

    async def set_status(
        self,
        owner: str,
        repo: str,
        sha: str,
        state: CommitState | str,
        description: str,
        target_url: Optional[str] = None,
    ) -> dict:
        commit_state = self._validate(sha, state)
        description = truncate(description, MAX_DESCRIPTION_LENGTH)
        _logger.info("Setting status %s on %s/%s@%s: %s", commit_state.value, owner, repo, sha[:7], description)
        return await self._client.set_commit_status(
            owner,
            repo,
            sha,
            state=commit_state.value,
            description=description,
            context=self._context,
            target_url=target_url,
        )

    async def report(
        self,
        owner: str,
        repo: str,
        sha: Optional[str],
        state: CommitState,
        description: str,
        target_url: Optional[str] = None,
    ) -> StatusOutcome:
        """Best-effort variant of set_status: failures are logged and returned, never raised."""
        try:
            await self.set_status(owner, repo, sha or "", state, description, target_url)
        except BotError as exc:
            _logger.warning("Failed to set %s status on %s/%s: %s", state.value, owner, repo, exc)
            return StatusOutcome(ok=False, state=state, description=description, error=str(exc))
        return StatusOutcome(ok=True, state=state, description=description)

    async def awaiting_choice(self, owner: str, repo: str, sha: Optional[str], pr_number: int) -> StatusOutcome:
        return await self.report(
            owner, repo, sha, CommitState.PENDING, f"{self._app_name} waiting for analysis choice on PR #{pr_number}"
        )

    async def processing(self, owner: str, repo: str, sha: Optional[str], pr_number: int) -> StatusOutcome:
        return await self.report(owner, repo, sha, CommitState.PENDING, f"{self._app_name} analyzing PR #{pr_number}")

    async def complete(
        self, owner: str, repo: str, sha: Optional[str], pr_number: int, target_url: Optional[str] = None
    ) -> StatusOutcome:
        return await self.report(
            owner,
            repo,
            sha,
            CommitState.SUCCESS,
            f"{self._app_name} analysis complete for PR #{pr_number}",
            target_url,
        )

    async def skipped(self, owner: str, repo: str, sha: Optional[str], reason: str) -> StatusOutcome:
        return await self.report(owner, repo, sha, CommitState.SUCCESS, f"{self._app_name} skipped: {reason}")

    async def failed(self, owner: str, repo: str, sha: Optional[str], error: str) -> StatusOutcome:
        return await self.report(
            owner, repo, sha, CommitState.ERROR, f"{self._app_name} failed: {truncate_error(error)}"
        )
