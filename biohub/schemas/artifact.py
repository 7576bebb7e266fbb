"""Artifact DTOs."""

from __future__ import annotations

from uuid import UUID
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ArtifactRead(BaseModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

    id: int
    submission_id: int
    uuid: UUID
    key: str | None = None
    file_name: str
    file_type: str
    title: str | None = None
    description: str | None = None
    file_size: int | None = None
    create_date: datetime


class ArtifactSignedUrl(BaseModel):
    model_config = ConfigDict(extra="forbid")

    artifact_id: int
    url: str
    expires_in: int = Field(..., ge=1)
