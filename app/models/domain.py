"""Domain data models for the pull request analysis bot."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FileStatus(str, Enum):
    """GitHub's classification of a file in a pull request diff."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    RENAMED = "renamed"
    COPIED = "copied"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


class AnalysisMode(str, Enum):
    """How generated analysis output is published."""

    CREATE_PR = "create_pr"
    ADD_COMMENTS = "add_comments"


class CheckboxChoice(str, Enum):
    """Result of parsing the bot's option checkboxes out of a comment body."""

    NONE = "none"
    CREATE_PR = "create_pr"
    ADD_COMMENTS = "add_comments"
    CONFLICTING = "conflicting"

    @property
    def mode(self) -> Optional[AnalysisMode]:
        if self is CheckboxChoice.CREATE_PR:
            return AnalysisMode.CREATE_PR
        if self is CheckboxChoice.ADD_COMMENTS:
            return AnalysisMode.ADD_COMMENTS
        return None


class WorkflowState(str, Enum):
    """Lifecycle of a pull request as seen by the bot."""

    IDLE = "idle"
    AWAITING_CHOICE = "awaiting_choice"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RunStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class CommitState(str, Enum):
    """States accepted by the GitHub commit status API."""

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"
    FAILURE = "failure"


class Installation(BaseModel):
    """A binding of the GitHub App to one account or organization."""

    id: int
    account_login: str
    account_type: Optional[str] = None


class ChangedFile(BaseModel):
    """One file touched by a pull request, as reported by GitHub."""

    model_config = ConfigDict(frozen=True)

    filename: str
    status: FileStatus
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: Optional[str] = Field(None, description="Unified diff; absent for binary or very large files.")
    blob_url: Optional[str] = None
    raw_url: Optional[str] = None


class PullRequestContext(BaseModel):
    """Snapshot of the pull request a workflow run operates on."""

    owner: str
    repo: str
    number: int
    title: str = ""
    html_url: Optional[str] = None
    head_sha: str
    head_branch: str
    base_branch: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class WorkflowRun(BaseModel):
    """One execution of the analysis workflow triggered by a comment edit."""

    run_id: str
    owner: str
    repo: str
    pr_number: int
    comment_id: int
    mode: AnalysisMode
    state: WorkflowState = WorkflowState.PROCESSING
    status: RunStatus = RunStatus.PENDING
    head_sha: Optional[str] = None
    head_branch: Optional[str] = None
    base_branch: Optional[str] = None
    generated_branch: Optional[str] = None
    skipped: bool = False
    result_url: Optional[str] = None
    created_files: list[str] = Field(default_factory=list)
    error_message: Optional[str] = None
    started_at: datetime = Field(default_factory=_now)
    finished_at: Optional[datetime] = None

    def attach(self, pull: PullRequestContext) -> None:
        self.head_sha = pull.head_sha
        self.head_branch = pull.head_branch
        self.base_branch = pull.base_branch

    def complete(self) -> None:
        self.state = WorkflowState.COMPLETED
        self.status = RunStatus.SUCCESS
        self.finished_at = _now()

    def fail(self, message: str) -> None:
        self.state = WorkflowState.FAILED
        self.status = RunStatus.ERROR
        self.error_message = message
        self.finished_at = _now()

    @property
    def duration_seconds(self) -> float | None:
        if not self.finished_at:
            return None
        return (self.finished_at - self.started_at).total_seconds()
