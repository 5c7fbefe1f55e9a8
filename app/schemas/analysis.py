"""Wire schemas for the external file analysis API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.domain import ChangedFile


class AnalysisArtifact(BaseModel):
    """A file the analysis collaborator wants written to the repository."""

    model_config = ConfigDict(populate_by_name=True)

    path: str
    content: str
    type: str
    file_exists: bool = Field(
        False,
        alias="fileExists",
        description="Whether the collaborator believes the file already exists on the target branch.",
    )

    @property
    def extension(self) -> str:
        name = self.path.rsplit("/", 1)[-1]
        return name.rsplit(".", 1)[-1] if "." in name else ""


class AnalyzeFilesRequest(BaseModel):
    """Request body for POST /api/analyze-files."""

    model_config = ConfigDict(populate_by_name=True)

    changed_files: list[ChangedFile] = Field(default_factory=list, alias="changedFiles")


class AnalyzeFilesResponse(BaseModel):
    """Response body returned by the analysis collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    analysis_id: Optional[str] = Field(None, alias="analysisId")
    files_to_create: list[AnalysisArtifact] = Field(default_factory=list, alias="filesToCreate")
    timestamp: Optional[str] = None
    success: Optional[bool] = None
    message: Optional[str] = None
