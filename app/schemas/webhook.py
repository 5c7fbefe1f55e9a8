"""Schemas for the subset of GitHub webhook payloads the bot consumes."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Account(_Payload):
    login: str
    id: Optional[int] = None
    type: Optional[str] = None


class Repository(_Payload):
    full_name: str
    name: str
    owner: Optional[Account] = None

    @property
    def owner_login(self) -> str:
        if self.owner:
            return self.owner.login
        return self.full_name.split("/", 1)[0]


class BranchRef(_Payload):
    ref: str
    sha: Optional[str] = None


class PullRequest(_Payload):
    number: int
    title: str = ""
    html_url: Optional[str] = None
    draft: bool = False
    created_at: Optional[str] = None
    head: BranchRef
    base: BranchRef
    user: Optional[Account] = None


class PullRequestEvent(_Payload):
    action: str
    pull_request: PullRequest
    repository: Repository
    sender: Optional[Account] = None


class IssueComment(_Payload):
    id: int
    body: Optional[str] = ""
    user: Optional[Account] = None


class Issue(_Payload):
    number: int
    title: str = ""
    html_url: Optional[str] = None
    pull_request: Optional[dict[str, Any]] = Field(
        None, description="Present only when the issue is a pull request."
    )
    user: Optional[Account] = None


class IssueCommentEvent(_Payload):
    action: str
    comment: IssueComment
    issue: Issue
    repository: Repository
    sender: Optional[Account] = None


class WebhookResponse(BaseModel):
    """Response body returned to GitHub for every delivery."""

    success: bool = True
    message: str
    skipped: Optional[bool] = None
    choice: Optional[str] = None
    pr: Optional[dict[str, Any]] = None
    run: Optional[dict[str, Any]] = None
