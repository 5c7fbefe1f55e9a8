"""Utilities for generating identifiers used across the service."""

from __future__ import annotations

import time
import uuid

ANALYSIS_BRANCH_PREFIX = "auto-analysis-pr-"


def new_run_id() -> str:
    return f"run_{uuid.uuid4().hex}"


def new_analysis_branch(pr_number: int, timestamp_ms: int | None = None) -> str:
    """Branch name for generated analysis output, unique per PR and millisecond."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{ANALYSIS_BRANCH_PREFIX}{pr_number}-{timestamp_ms}"


def is_analysis_branch(ref: str | None) -> bool:
    return bool(ref) and ref.startswith(ANALYSIS_BRANCH_PREFIX)
