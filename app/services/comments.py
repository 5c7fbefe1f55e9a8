"""Markdown bodies for the bot's pull request comments, and the checkbox parser."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from app.models.domain import AnalysisMode, ChangedFile, CheckboxChoice
from app.schemas.analysis import AnalysisArtifact

CREATE_PR_LABEL = "**Analyze and create new PR**"
ADD_COMMENTS_LABEL = "**Analyze and add to comments**"

_MODE_LABELS = {
    AnalysisMode.CREATE_PR: CREATE_PR_LABEL,
    AnalysisMode.ADD_COMMENTS: ADD_COMMENTS_LABEL,
}


def _checked(label: str) -> re.Pattern[str]:
    return re.compile(rf"^\s*[-*]\s+\[[xX]\]\s+{re.escape(label)}", re.MULTILINE)


_CREATE_PR_CHECKED = _checked(CREATE_PR_LABEL)
_ADD_COMMENTS_CHECKED = _checked(ADD_COMMENTS_LABEL)


def detect_choice(body: Optional[str]) -> CheckboxChoice:
    """Which analysis option is ticked in ``body``.

    Exactly one ticked option selects a mode; both ticked is CONFLICTING and
    neither is NONE, and neither of those starts a run.
    """
    if not body:
        return CheckboxChoice.NONE
    create_pr = bool(_CREATE_PR_CHECKED.search(body))
    add_comments = bool(_ADD_COMMENTS_CHECKED.search(body))
    if create_pr and add_comments:
        return CheckboxChoice.CONFLICTING
    if create_pr:
        return CheckboxChoice.CREATE_PR
    if add_comments:
        return CheckboxChoice.ADD_COMMENTS
    return CheckboxChoice.NONE


def _footer(app_name: str) -> str:
    return f"---\n*Automated by {app_name}*"


def format_file_list(files: Sequence[ChangedFile]) -> str:
    return "\n".join(
        f"{index}. **{file.filename}** ({file.status.value}) - +{file.additions} -{file.deletions}"
        for index, file in enumerate(files, start=1)
    )


def render_initial_comment(files: Sequence[ChangedFile], app_name: str) -> str:
    return f"""## Files Changed in this PR

Hi! I've detected **{len(files)} changed files** in this PR:

{format_file_list(files)}

### Choose Analysis Option:

- [ ] {CREATE_PR_LABEL} - Create a separate PR with analysis files
- [ ] {ADD_COMMENTS_LABEL} - Add analysis results as comments on this PR

**Instructions:** Check one of the boxes above to proceed with analysis.

{_footer(app_name)}"""


def render_processing_comment(mode: AnalysisMode, app_name: str) -> str:
    action = "create the analysis PR" if mode is AnalysisMode.CREATE_PR else "add the analysis comments"
    return f"""## Files Changed in this PR

**Status:** Analysis in progress...

Please wait while I {action}.

{_footer(app_name)}"""


def render_completed_comment(
    files: Sequence[ChangedFile],
    mode: AnalysisMode,
    app_name: str,
    *,
    result_url: Optional[str] = None,
    skipped: bool = False,
) -> str:
    if skipped:
        result = "No analysis files were generated, so nothing was published."
    elif mode is AnalysisMode.CREATE_PR:
        result = f"Analysis PR created successfully! [View Analysis PR]({result_url})"
    else:
        result = "Analysis results added as comments above successfully!"
    return f"""## Processing Complete

**Your Selection:** {_MODE_LABELS[mode]}

**Files Analyzed:** {len(files)} changed files in this PR:

{format_file_list(files)}

**Result:** {result}

{_footer(app_name)}"""


def render_error_comment(files: Sequence[ChangedFile], error_message: str, app_name: str) -> str:
    return f"""## Processing Failed

**Files Analyzed:** {len(files)} changed files in this PR:

{format_file_list(files)}

**Error:** {error_message}

Check one of the options again to retry:

- [ ] {CREATE_PR_LABEL} - Create a separate PR with analysis files
- [ ] {ADD_COMMENTS_LABEL} - Add analysis results as comments on this PR

{_footer(app_name)}"""


def _fence(content: str) -> str:
    longest = max((len(run) for run in re.findall(r"`+", content)), default=0)
    return "`" * max(3, longest + 1)


def render_artifact_comment(artifact: AnalysisArtifact, app_name: str) -> str:
    action = "Update existing file" if artifact.file_exists else "Create new file"
    fence = _fence(artifact.content)
    return f"""## Analysis Result: `{artifact.path}`

**File Type:** {artifact.type}
**Status:** {action}

### Content:
{fence}{artifact.extension}
{artifact.content}
{fence}

{_footer(app_name)}"""


def render_summary_comment(artifacts: Sequence[AnalysisArtifact]) -> str:
    generated = "\n".join(f"- `{artifact.path}` ({artifact.type})" for artifact in artifacts)
    return f"""## Analysis Complete

Added **{len(artifacts)} analysis files** as comments above.

**Files generated:**
{generated}

*Note: Analysis results added as comments only - no additional PR was created.*"""


def render_no_artifacts_comment() -> str:
    return "## Analysis Results\n\nNo analysis files were generated for this PR."


def render_analysis_pr_title(pr_number: int, pr_title: str) -> str:
    return f"Auto-generated analysis for PR #{pr_number}: {pr_title}"


def render_analysis_pr_body(pr_number: int, base_branch: str, head_branch: str, app_name: str, generated_at: str) -> str:
    return f"""## Automated PR Analysis (Draft)

This PR was automatically generated in response to PR #{pr_number}.

### Original PR Details
- **Base Branch**: {base_branch}
- **Head Branch**: {head_branch}

---
*Auto-generated by {app_name} at {generated_at}*"""
