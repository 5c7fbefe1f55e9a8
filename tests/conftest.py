from __future__ import annotations

import json
import re
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any
from urllib.parse import unquote

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

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
from app.services.comments import ADD_COMMENTS_LABEL, CREATE_PR_LABEL
from app.services.orchestrator import AnalysisOrchestrator
from app.services.status import CommitStatusReporter

GITHUB_API = "https://api.github.test"
ANALYSIS_API = "http://analysis.test"
HEAD_SHA = "a" * 40
APP_NAME = "pr-analysis-bot"
BRANCH_TIMESTAMP_MS = 1700000000000


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeGitHub:
    """In-memory stand-in for the GitHub REST API, served through httpx.MockTransport."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.requests: list[httpx.Request] = []
        self.installations: list[dict[str, Any]] = [
            {"id": 11, "account": {"login": "Acme", "type": "Organization"}},
        ]
        self.access: dict[int, set[str]] = {11: {"acme/widgets"}}
        self.token_ttl = timedelta(hours=1)
        self.mint_payload: dict[str, Any] | None = None
        self.tokens: dict[str, int] = {}
        self.pull: dict[str, Any] = {
            "number": 7,
            "title": "Add widget sorting",
            "html_url": "https://github.com/acme/widgets/pull/7",
            "head": {"ref": "feature/widgets", "sha": HEAD_SHA},
            "base": {"ref": "main", "sha": "b" * 40},
        }
        self.pull_files: list[dict[str, Any]] = [
            {
                "filename": "src/widgets.py",
                "status": "modified",
                "additions": 10,
                "deletions": 2,
                "changes": 12,
                "patch": "@@ -1 +1 @@",
            },
            {"filename": "docs/widgets.md", "status": "added", "additions": 4, "deletions": 0, "changes": 4},
        ]
        self.page_size = 100
        self.existing_files: dict[str, str] = {}
        self.failures: dict[tuple[str, str], int] = {}
        self._next_comment_id = 500

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str, pattern: str) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method and re.fullmatch(pattern, request.url.path)
        ]

    def count(self, method: str, pattern: str) -> int:
        return len(self.calls(method, pattern))

    def bodies(self, method: str, pattern: str) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.calls(method, pattern)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path
        for (fail_method, pattern), status_code in self.failures.items():
            if fail_method == method and re.fullmatch(pattern, path):
                return httpx.Response(status_code, json={"message": "forced failure"})

        if method == "GET" and path == "/app/installations":
            return httpx.Response(200, json=self.installations)

        mint = re.fullmatch(r"/app/installations/(\d+)/access_tokens", path)
        if method == "POST" and mint:
            return self._mint(int(mint.group(1)))

        match = re.fullmatch(r"/repos/([^/]+)/([^/]+)(/.*)?", path)
        if not match:
            return httpx.Response(404, json={"message": "Not Found"})
        owner, repo, rest = match.group(1), match.group(2), match.group(3) or ""
        bearer = request.headers.get("Authorization", "").removeprefix("Bearer ")
        installation_id = self.tokens.get(bearer)
        if installation_id is None or f"{owner}/{repo}".lower() not in self.access.get(installation_id, set()):
            return httpx.Response(404, json={"message": "Not Found"})
        return self._repo_route(request, owner, repo, rest)

    def _mint(self, installation_id: int) -> httpx.Response:
        if self.mint_payload is not None:
            return httpx.Response(201, json=self.mint_payload)
        token = f"ghs_{installation_id}_{len(self.tokens)}"
        self.tokens[token] = installation_id
        expires_at = (self.clock() + self.token_ttl).isoformat().replace("+00:00", "Z")
        return httpx.Response(201, json={"token": token, "expires_at": expires_at})

    def _repo_route(self, request: httpx.Request, owner: str, repo: str, rest: str) -> httpx.Response:
        method = request.method
        body = json.loads(request.content) if request.content else {}
        number = self.pull["number"]

        if method == "GET" and rest == "":
            return httpx.Response(200, json={"full_name": f"{owner}/{repo}", "private": True})
        if method == "GET" and rest == f"/pulls/{number}":
            return httpx.Response(200, json=self.pull)
        if method == "GET" and rest == f"/pulls/{number}/files":
            return self._files_page(request)
        if method == "GET" and rest.startswith("/git/ref/heads/"):
            branch = rest[len("/git/ref/heads/"):]
            if branch != self.pull["head"]["ref"]:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json={"ref": f"refs/heads/{branch}", "object": {"sha": HEAD_SHA}})
        if method == "POST" and rest == "/git/refs":
            return httpx.Response(201, json={"ref": body["ref"], "object": {"sha": body["sha"]}})
        if rest.startswith("/contents/"):
            file_path = unquote(rest[len("/contents/"):])
            if method == "GET":
                if file_path in self.existing_files:
                    return httpx.Response(200, json={"path": file_path, "sha": self.existing_files[file_path]})
                return httpx.Response(404, json={"message": "Not Found"})
            if method == "PUT":
                return httpx.Response(201, json={"content": {"path": file_path, "sha": "f" * 40}})
        if method == "POST" and rest == "/pulls":
            return httpx.Response(
                201,
                json={
                    "number": number + 1,
                    "html_url": f"https://github.com/{owner}/{repo}/pull/{number + 1}",
                    "draft": body.get("draft", False),
                },
            )
        if method == "POST" and rest == f"/issues/{number}/comments":
            self._next_comment_id += 1
            return httpx.Response(201, json={"id": self._next_comment_id, "body": body["body"]})
        if method == "PATCH" and re.fullmatch(r"/issues/comments/\d+", rest):
            return httpx.Response(200, json={"id": int(rest.rsplit("/", 1)[-1]), "body": body["body"]})
        if method == "POST" and rest.startswith("/statuses/"):
            return httpx.Response(201, json={"state": body["state"], "context": body["context"]})
        return httpx.Response(404, json={"message": "Not Found"})

    def _files_page(self, request: httpx.Request) -> httpx.Response:
        page = int(request.url.params.get("page", "1"))
        start = (page - 1) * self.page_size
        chunk = self.pull_files[start : start + self.page_size]
        headers = {}
        if start + self.page_size < len(self.pull_files):
            next_url = request.url.copy_with(params={"per_page": self.page_size, "page": page + 1})
            headers["Link"] = f'<{next_url}>; rel="next"'
        return httpx.Response(200, json=chunk, headers=headers)


class FakeAnalysisApi:
    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.artifacts: list[dict[str, Any]] = []
        self.status_code = 200

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"error": "analysis unavailable"})
        return httpx.Response(
            200,
            json={
                "analysisId": "analysis-1",
                "filesToCreate": self.artifacts,
                "timestamp": "2024-06-01T00:00:00Z",
            },
        )


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> str:
    return rsa_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()).decode()


@pytest.fixture(scope="session")
def public_key_pem(rsa_key) -> str:
    return rsa_key.public_key().public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo).decode()


@pytest.fixture
def app_credential(private_key_pem) -> AppCredential:
    return AppCredential(app_id="12345", private_key=private_key_pem)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_github(clock) -> FakeGitHub:
    return FakeGitHub(clock)


@pytest.fixture
def fake_analysis() -> FakeAnalysisApi:
    return FakeAnalysisApi()


@pytest.fixture
def github_stack(fake_github, app_credential, clock):
    def build(installation_id: int | None = None, cache_ttl_seconds: int = 600) -> SimpleNamespace:
        http = GitHubHttp(build_http_client(GITHUB_API, transport=fake_github.transport))
        credentials = CredentialProvider(app_credential, clock=clock)
        resolver = InstallationResolver(http, credentials, cache_ttl_seconds=cache_ttl_seconds, clock=clock)
        tokens = TokenCache(resolver, installation_id=installation_id, clock=clock)
        client = RepositoryClient(http, tokens)
        status = CommitStatusReporter(client, context=f"{APP_NAME}/analysis", app_name=APP_NAME)
        return SimpleNamespace(
            http=http, credentials=credentials, resolver=resolver, tokens=tokens, client=client, status=status
        )

    return build


@pytest.fixture
def orchestrator_stack(github_stack, fake_analysis) -> SimpleNamespace:
    stack = github_stack()
    stack.analysis = AnalysisApiClient(ANALYSIS_API, transport=fake_analysis.transport)
    stack.orchestrator = AnalysisOrchestrator(
        stack.client,
        stack.analysis,
        stack.status,
        app_name=APP_NAME,
        timestamp_ms=lambda: BRANCH_TIMESTAMP_MS,
    )
    return stack


@pytest.fixture
def pull_request_payload():
    def build(head_ref: str = "feature/widgets", number: int = 7, action: str = "opened") -> dict[str, Any]:
        return {
            "action": action,
            "pull_request": {
                "number": number,
                "title": "Add widget sorting",
                "html_url": f"https://github.com/acme/widgets/pull/{number}",
                "draft": False,
                "created_at": "2024-06-01T00:00:00Z",
                "head": {"ref": head_ref, "sha": HEAD_SHA},
                "base": {"ref": "main", "sha": "b" * 40},
                "user": {"login": "octocat"},
            },
            "repository": {"full_name": "acme/widgets", "name": "widgets", "owner": {"login": "acme"}},
            "sender": {"login": "octocat"},
        }

    return build


@pytest.fixture
def comment_payload():
    def build(
        *, create_pr: bool = False, add_comments: bool = False, on_pull_request: bool = True, comment_id: int = 321
    ) -> dict[str, Any]:
        body = "\n".join(
            [
                "## Files Changed in this PR",
                "",
                f"- [{'x' if create_pr else ' '}] {CREATE_PR_LABEL} - Create a separate PR with analysis files",
                f"- [{'x' if add_comments else ' '}] {ADD_COMMENTS_LABEL} - Add analysis results as comments on this PR",
            ]
        )
        issue: dict[str, Any] = {
            "number": 7,
            "title": "Add widget sorting",
            "html_url": "https://github.com/acme/widgets/issues/7",
            "user": {"login": "octocat"},
        }
        if on_pull_request:
            issue["pull_request"] = {"url": "https://api.github.com/repos/acme/widgets/pulls/7"}
        return {
            "action": "edited",
            "comment": {"id": comment_id, "body": body, "user": {"login": "pr-analysis-bot[bot]"}},
            "issue": issue,
            "repository": {"full_name": "acme/widgets", "name": "widgets", "owner": {"login": "acme"}},
            "sender": {"login": "octocat"},
        }

    return build
