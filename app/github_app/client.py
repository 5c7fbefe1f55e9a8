"""Repository-scoped GitHub operations authenticated as the app installation."""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional
from urllib.parse import quote

from app.core.errors import GitHubApiError
from app.github_app.http import GitHubHttp
from app.github_app.token_cache import TokenCache
from app.models.domain import ChangedFile, PullRequestContext

_logger = logging.getLogger(__name__)


def _repo_path(owner: str, repo: str) -> str:
    return f"/repos/{owner}/{repo}"


class RepositoryClient:
    """Thin facade over the GitHub REST endpoints the workflow needs.

    Every call first resolves an installation token for the target repository
    through the shared token cache.
    """

    def __init__(self, http: GitHubHttp, tokens: TokenCache) -> None:
        self._http = http
        self._tokens = tokens

    async def _call(
        self,
        owner: str,
        repo: str,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        token = await self._tokens.get_token(owner, repo)
        return await self._http.request_json(
            method, f"{_repo_path(owner, repo)}{path}", bearer=token, json=json, params=params
        )

    async def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestContext:
        data = await self._call(owner, repo, "GET", f"/pulls/{number}")
        return PullRequestContext(
            owner=owner,
            repo=repo,
            number=number,
            title=data.get("title") or "",
            html_url=data.get("html_url"),
            head_sha=data["head"]["sha"],
            head_branch=data["head"]["ref"],
            base_branch=data["base"]["ref"],
        )

    async def list_pull_request_files(self, owner: str, repo: str, number: int) -> list[ChangedFile]:
        token = await self._tokens.get_token(owner, repo)
        path = f"{_repo_path(owner, repo)}/pulls/{number}/files"
        files: list[ChangedFile] = []
        async for item in self._http.paginate(path, bearer=token, params={"per_page": 100}):
            try:
                files.append(ChangedFile.model_validate(item))
            except ValueError as exc:
                raise GitHubApiError(
                    f"GitHub returned a malformed file entry for {owner}/{repo}#{number}: {exc}",
                    method="GET",
                    path=path,
                ) from exc
        _logger.info("Found %d changed files in %s/%s#%d", len(files), owner, repo, number)
        return files

    async def get_ref(self, owner: str, repo: str, branch: str) -> str:
        data = await self._call(owner, repo, "GET", f"/git/ref/heads/{quote(branch)}")
        return data["object"]["sha"]

    async def create_ref(self, owner: str, repo: str, branch: str, sha: str) -> dict:
        _logger.info("Creating branch %s at %s in %s/%s", branch, sha[:7], owner, repo)
        return await self._call(owner, repo, "POST", "/git/refs", json={"ref": f"refs/heads/{branch}", "sha": sha})

    async def get_file_sha(self, owner: str, repo: str, path: str, ref: str) -> Optional[str]:
        """Blob SHA of ``path`` on ``ref``, or None when the file does not exist."""
        try:
            data = await self._call(owner, repo, "GET", f"/contents/{quote(path)}", params={"ref": ref})
        except GitHubApiError as exc:
            if exc.is_not_found:
                return None
            raise
        if isinstance(data, dict):
            return data.get("sha")
        # A directory listing comes back as a list; there is no single blob to update.
        return None

    async def create_or_update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        *,
        content: str,
        message: str,
        branch: str,
        sha: Optional[str] = None,
    ) -> dict:
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            body["sha"] = sha
        return await self._call(owner, repo, "PUT", f"/contents/{quote(path)}", json=body)

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        *,
        title: str,
        head: str,
        base: str,
        body: str,
        draft: bool = True,
    ) -> dict:
        data = await self._call(
            owner,
            repo,
            "POST",
            "/pulls",
            json={"title": title, "head": head, "base": base, "body": body, "draft": draft},
        )
        _logger.info("Created %s #%s: %s", "draft PR" if draft else "PR", data.get("number"), data.get("html_url"))
        return data

    async def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> dict:
        return await self._call(owner, repo, "POST", f"/issues/{number}/comments", json={"body": body})

    async def update_issue_comment(self, owner: str, repo: str, comment_id: int, body: str) -> dict:
        return await self._call(owner, repo, "PATCH", f"/issues/comments/{comment_id}", json={"body": body})

    async def set_commit_status(
        self,
        owner: str,
        repo: str,
        sha: str,
        *,
        state: str,
        description: str,
        context: str,
        target_url: Optional[str] = None,
    ) -> dict:
        body: dict[str, Any] = {"state": state, "description": description, "context": context}
        if target_url:
            body["target_url"] = target_url
        return await self._call(owner, repo, "POST", f"/statuses/{sha}", json=body)
