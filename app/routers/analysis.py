"""Stub file analysis endpoint for local development.

Mirrors the contract of the external analysis service and always returns the
same two files: one marked as already existing, one new.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter

from app.core.config import settings
from app.schemas.analysis import AnalysisArtifact, AnalyzeFilesRequest, AnalyzeFilesResponse

_logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])

SAMPLE_TEST = '''import unittest
import calculator


class TestCalculator(unittest.TestCase):
    def test_add(self):
        self.assertEqual(calculator.add(2, 3), 5)
        self.assertEqual(calculator.add(-1, 1), 0)

    def test_subtract(self):
        self.assertEqual(calculator.subtract(5, 3), 2)
        self.assertEqual(calculator.subtract(0, 3), -3)


if __name__ == "__main__":
    unittest.main()
'''

STUB_ARTIFACTS = (
    AnalysisArtifact(path="python_oops/sample_test.py", content=SAMPLE_TEST, type="sample_test", file_exists=True),
    AnalysisArtifact(
        path="python_oops/new_test.py",
        content="# This is a new test file created by the analysis service\n",
        type="new_test",
        file_exists=False,
    ),
)


@router.post("/analyze-files", response_model=AnalyzeFilesResponse, response_model_by_alias=True)
async def analyze_files(payload: AnalyzeFilesRequest) -> AnalyzeFilesResponse:
    _logger.info(
        "Stub analysis called with %d files: %s",
        len(payload.changed_files),
        [file.filename for file in payload.changed_files],
    )
    if settings.stub_analysis_delay_seconds > 0:
        await asyncio.sleep(settings.stub_analysis_delay_seconds)
    return AnalyzeFilesResponse(
        success=True,
        message="File analysis completed",
        analysis_id=f"analysis-{int(time.time() * 1000)}",
        files_to_create=list(STUB_ARTIFACTS),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
