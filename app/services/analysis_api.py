"""Client for the external file analysis API."""

from __future__ import annotations

import logging
from typing import Dict, Sequence

import httpx

from app.core.errors import AnalysisApiError
from app.models.domain import ChangedFile
from app.schemas.analysis import AnalyzeFilesRequest, AnalyzeFilesResponse

_logger = logging.getLogger(__name__)


class AnalysisApiClient:
    """Posts changed files to the analysis service and parses its file plan."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        headers: Dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        normalized_base = base_url.rstrip("/") + "/"
        self._client = httpx.AsyncClient(
            base_url=normalized_base,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "AnalysisApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def analyze_files(self, changed_files: Sequence[ChangedFile]) -> AnalyzeFilesResponse:
        payload = AnalyzeFilesRequest(changed_files=list(changed_files)).model_dump(by_alias=True, mode="json")
        try:
            response = await self._client.post("api/analyze-files", json=payload)
        except httpx.TimeoutException as exc:
            raise AnalysisApiError("Analysis API request timed out") from exc
        except httpx.HTTPError as exc:
            raise AnalysisApiError(f"Analysis API request failed: {exc}") from exc

        if response.is_error:
            raise AnalysisApiError(
                f"Analysis API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        try:
            result = AnalyzeFilesResponse.model_validate(response.json())
        except ValueError as exc:
            raise AnalysisApiError(f"Analysis API returned a malformed body: {exc}", status_code=response.status_code) from exc

        _logger.info(
            "Analysis %s returned %d files: %s",
            result.analysis_id,
            len(result.files_to_create),
            [artifact.path for artifact in result.files_to_create],
        )
        return result
