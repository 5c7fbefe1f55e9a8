"""Async GitHub REST transport shared by the app and installation clients."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from app.core.errors import GitHubApiError

_logger = logging.getLogger(__name__)

API_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}


def build_http_client(
    api_url: str,
    *,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=api_url.rstrip("/"),
        timeout=timeout,
        headers=API_HEADERS,
        transport=transport,
    )


def _next_link(response: httpx.Response) -> Optional[str]:
    link_header = response.headers.get("Link")
    if not link_header:
        return None
    for part in link_header.split(","):
        segment = part.strip()
        if segment.endswith('rel="next"'):
            return segment[segment.find("<") + 1 : segment.find(">")]
    return None


class GitHubHttp:
    """Issues authenticated GitHub requests and maps failures to GitHubApiError.

    Callers supply the bearer credential per request: an app JWT for /app
    endpoints, an installation token for everything else. Nothing is retried.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        bearer: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {bearer}"}
        try:
            response = await self._client.request(method, path, headers=headers, json=json, params=params)
        except httpx.TimeoutException as exc:
            raise GitHubApiError(f"GitHub API {method} {path} timed out", method=method, path=path) from exc
        except httpx.HTTPError as exc:
            raise GitHubApiError(f"GitHub API {method} {path} failed: {exc}", method=method, path=path) from exc

        if response.is_error:
            raise GitHubApiError(
                f"GitHub API {method} {path} returned {response.status_code}: {self._error_detail(response)}",
                status_code=response.status_code,
                method=method,
                path=path,
            )
        return response

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        bearer: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        response = await self.request(method, path, bearer=bearer, json=json, params=params)
        if not response.content:
            return None
        return response.json()

    async def paginate(
        self,
        path: str,
        *,
        bearer: str,
        params: Optional[Dict[str, Any]] = None,
        item_key: str | None = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        url: Optional[str] = path
        query = params
        while url:
            response = await self.request("GET", url, bearer=bearer, params=query)
            data = response.json()
            items = data.get(item_key, []) if item_key and isinstance(data, dict) else data
            for item in items:
                yield item
            url = _next_link(response)
            query = None

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.reason_phrase or response.text[:200]
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.reason_phrase
