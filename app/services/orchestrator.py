"""Service orchestration for the pull request analysis workflow."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from app.core.errors import BotError, ValidationError
from app.core.identifiers import is_analysis_branch, new_analysis_branch, new_run_id
from app.github_app.client import RepositoryClient
from app.models.domain import (
    AnalysisMode,
    ChangedFile,
    PullRequestContext,
    WorkflowRun,
    WorkflowState,
)
from app.schemas.analysis import AnalysisArtifact
from app.schemas.webhook import IssueCommentEvent, PullRequestEvent, WebhookResponse
from app.services import comments
from app.services.analysis_api import AnalysisApiClient
from app.services.status import CommitStatusReporter
from app.telemetry import record_workflow_run

_logger = logging.getLogger(__name__)

NO_FILES_REASON = "No files to create"
RUN_SUMMARY_FIELDS = {"run_id", "state", "status", "generated_branch", "result_url", "created_files", "error_message"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _split_full_name(full_name: str) -> tuple[str, str]:
    owner, _, repo = full_name.partition("/")
    return owner, repo


class AnalysisOrchestrator:
    """Drives a pull request from "opened" through an analysis run.

    idle -> awaiting_choice happens on PR open (initial comment with options);
    awaiting_choice -> processing happens when exactly one option is ticked;
    processing ends in completed or failed. A failed run is not retried; ticking
    an option again starts a new run.
    """

    def __init__(
        self,
        client: RepositoryClient,
        analysis: AnalysisApiClient,
        status: CommitStatusReporter,
        *,
        app_name: str,
        timestamp_ms: Callable[[], int] | None = None,
    ) -> None:
        self._client = client
        self._analysis = analysis
        self._status = status
        self._app_name = app_name
        self._timestamp_ms = timestamp_ms

    async def handle_pull_request_opened(self, event: PullRequestEvent) -> WebhookResponse:
        pr = event.pull_request
        owner, repo = _split_full_name(event.repository.full_name)

        if is_analysis_branch(pr.head.ref):
            _logger.info(
                "Skipping auto-generated PR #%d (%s) to prevent loop", pr.number, pr.head.ref
            )
            return WebhookResponse(
                message="Auto-generated PR skipped to prevent loop",
                skipped=True,
                pr={"number": pr.number, "title": pr.title, "branch": pr.head.ref},
            )

        _logger.info("Pull request #%d opened in %s: %s -> %s", pr.number, event.repository.full_name, pr.head.ref, pr.base.ref)
        files = await self._client.list_pull_request_files(owner, repo, pr.number)
        state = WorkflowState.IDLE
        if files:
            await self._client.create_issue_comment(
                owner, repo, pr.number, comments.render_initial_comment(files, self._app_name)
            )
            await self._status.awaiting_choice(owner, repo, pr.head.sha, pr.number)
            state = WorkflowState.AWAITING_CHOICE
            _logger.info("Posted analysis options on PR #%d, waiting for a choice", pr.number)

        return WebhookResponse(
            message="Pull request details captured with file changes",
            pr={
                "number": pr.number,
                "title": pr.title,
                "url": pr.html_url,
                "author": event.sender.login if event.sender else None,
                "repository": event.repository.full_name,
                "created_at": pr.created_at,
                "base_branch": pr.base.ref,
                "head_branch": pr.head.ref,
                "state": state.value,
                "file_changes": [file.model_dump(mode="json") for file in files],
            },
        )

    async def handle_comment_edited(self, event: IssueCommentEvent) -> WebhookResponse:
        choice = comments.detect_choice(event.comment.body)
        _logger.info(
            "Comment %d edited on %s#%d, detected choice: %s",
            event.comment.id,
            event.repository.full_name,
            event.issue.number,
            choice.value,
        )
        if choice.mode is None:
            return WebhookResponse(message="No valid choice detected", choice=choice.value)

        owner, repo = _split_full_name(event.repository.full_name)
        run = WorkflowRun(
            run_id=new_run_id(),
            owner=owner,
            repo=repo,
            pr_number=event.issue.number,
            comment_id=event.comment.id,
            mode=choice.mode,
        )
        await self.execute_run(run)
        return WebhookResponse(
            message="Comment processed",
            choice=choice.value,
            skipped=run.skipped or None,
            run=run.model_dump(mode="json", include=RUN_SUMMARY_FIELDS),
        )

    async def execute_run(self, run: WorkflowRun) -> WorkflowRun:
        files: list[ChangedFile] = []
        try:
            await self._client.update_issue_comment(
                run.owner, run.repo, run.comment_id, comments.render_processing_comment(run.mode, self._app_name)
            )
            pull = await self._client.get_pull_request(run.owner, run.repo, run.pr_number)
            run.attach(pull)
            await self._status.processing(run.owner, run.repo, run.head_sha, run.pr_number)
            files = await self._client.list_pull_request_files(run.owner, run.repo, run.pr_number)

            if run.mode is AnalysisMode.CREATE_PR:
                await self._create_analysis_pr(run, pull, files)
            else:
                await self._add_analysis_comments(run, files)

            await self._client.update_issue_comment(
                run.owner,
                run.repo,
                run.comment_id,
                comments.render_completed_comment(
                    files, run.mode, self._app_name, result_url=run.result_url, skipped=run.skipped
                ),
            )
            run.complete()
            _logger.info("Run %s for %s/%s#%d completed", run.run_id, run.owner, run.repo, run.pr_number)
        except Exception as exc:
            _logger.exception("Run %s for %s/%s#%d failed", run.run_id, run.owner, run.repo, run.pr_number)
            run.fail(str(exc) or exc.__class__.__name__)
            await self._report_failure(run, files)

        record_workflow_run(run.mode.value, run.state.value, run.duration_seconds)
        return run

    async def _create_analysis_pr(
        self, run: WorkflowRun, pull: PullRequestContext, files: list[ChangedFile]
    ) -> None:
        if is_analysis_branch(pull.head_branch):
            raise ValidationError(f"Refusing to analyze auto-generated branch {pull.head_branch}")

        result = await self._analysis.analyze_files(files)
        if not result.files_to_create:
            _logger.info("No files to create for PR #%d; skipping branch and PR creation", run.pr_number)
            run.skipped = True
            await self._status.skipped(run.owner, run.repo, run.head_sha, NO_FILES_REASON)
            return

        timestamp_ms = self._timestamp_ms() if self._timestamp_ms else None
        branch = new_analysis_branch(run.pr_number, timestamp_ms)
        base_sha = await self._client.get_ref(run.owner, run.repo, pull.head_branch)
        await self._client.create_ref(run.owner, run.repo, branch, base_sha)
        run.generated_branch = branch

        for artifact in result.files_to_create:
            await self._commit_artifact(run, branch, artifact)

        new_pr = await self._client.create_pull_request(
            run.owner,
            run.repo,
            title=comments.render_analysis_pr_title(run.pr_number, pull.title),
            head=branch,
            base=pull.head_branch,
            body=comments.render_analysis_pr_body(
                run.pr_number, pull.head_branch, branch, self._app_name, _now().isoformat()
            ),
            draft=True,
        )
        run.result_url = new_pr.get("html_url")
        await self._status.complete(run.owner, run.repo, run.head_sha, run.pr_number, run.result_url)

    async def _commit_artifact(self, run: WorkflowRun, branch: str, artifact: AnalysisArtifact) -> None:
        sha = None
        if artifact.file_exists:
            sha = await self._client.get_file_sha(run.owner, run.repo, artifact.path, branch)
            if sha is None:
                _logger.info("File %s marked as existing but not found; creating it", artifact.path)
        verb = "Update" if sha else "Add"
        await self._client.create_or_update_file(
            run.owner,
            run.repo,
            artifact.path,
            content=artifact.content,
            message=f"{verb} {artifact.type} file for PR #{run.pr_number} analysis",
            branch=branch,
            sha=sha,
        )
        run.created_files.append(artifact.path)
        _logger.info("%s file %s on %s", "Updated" if sha else "Created", artifact.path, branch)

    async def _add_analysis_comments(self, run: WorkflowRun, files: list[ChangedFile]) -> None:
        result = await self._analysis.analyze_files(files)
        if result.files_to_create:
            for artifact in result.files_to_create:
                await self._client.create_issue_comment(
                    run.owner, run.repo, run.pr_number, comments.render_artifact_comment(artifact, self._app_name)
                )
                run.created_files.append(artifact.path)
            await self._client.create_issue_comment(
                run.owner, run.repo, run.pr_number, comments.render_summary_comment(result.files_to_create)
            )
        else:
            run.skipped = True
            await self._client.create_issue_comment(
                run.owner, run.repo, run.pr_number, comments.render_no_artifacts_comment()
            )
        await self._status.complete(run.owner, run.repo, run.head_sha, run.pr_number)

    async def _report_failure(self, run: WorkflowRun, files: list[ChangedFile]) -> None:
        """Publish the failure on the commit status and the triggering comment."""
        message = run.error_message or "Unknown error"
        try:
            if run.head_sha is None:
                run.attach(await self._client.get_pull_request(run.owner, run.repo, run.pr_number))
            if not files:
                files = await self._client.list_pull_request_files(run.owner, run.repo, run.pr_number)
        except BotError as exc:
            _logger.warning("Could not reload PR #%d after failure: %s", run.pr_number, exc)

        await self._status.failed(run.owner, run.repo, run.head_sha, message)
        try:
            await self._client.update_issue_comment(
                run.owner, run.repo, run.comment_id, comments.render_error_comment(files, message, self._app_name)
            )
        except BotError as exc:
            _logger.error("Failed to restore comment %d after error: %s", run.comment_id, exc)
