"""Artifact repository."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from biohub.errors import ApiClientError, ApiExecuteSQLError
from biohub.models.artifact import Artifact
from biohub.models.submission import Submission
from biohub.schemas.artifact import ArtifactRead

_EXPECTED_ONE_ROW = "rowCount was null or undefined, expected rowCount = 1"


def insert_artifact(
    db: Session,
    submission_id: int,
    file_name: str,
    file_type: str,
    file_size: int | None = None,
    title: str | None = None,
    description: str | None = None,
) -> ArtifactRead:
    row = db.execute(
        insert(Artifact)
        .values(
            submission_id=submission_id,
            file_name=file_name,
            file_type=file_type,
            file_size=file_size,
            title=title,
            description=description,
        )
        .returning(Artifact)
    ).scalar_one_or_none()
    if row is None:
        raise ApiExecuteSQLError(
            "Failed to insert artifact record",
            ["ArtifactRepository->insert_artifact", _EXPECTED_ONE_ROW],
        )
    return ArtifactRead.model_validate(row)


def update_artifact_key(db: Session, artifact_id: int, key: str) -> ArtifactRead:
    row = db.execute(
        update(Artifact).where(Artifact.id == artifact_id).values(key=key).returning(Artifact)
    ).scalar_one_or_none()
    if row is None:
        raise ApiExecuteSQLError(
            "Failed to update artifact record",
            ["ArtifactRepository->update_artifact_key", _EXPECTED_ONE_ROW],
        )
    return ArtifactRead.model_validate(row)


def get_artifact_by_id(db: Session, artifact_id: int) -> ArtifactRead:
    row = db.get(Artifact, artifact_id)
    if row is None:
        raise ApiClientError(
            "Failed to get artifact record",
            [f"ArtifactRepository->get_artifact_by_id: no artifact {artifact_id}"],
        )
    return ArtifactRead.model_validate(row)


def list_artifacts_for_package(db: Session, package_id: UUID) -> list[ArtifactRead]:
    """Artifacts uploaded against any version of the package, oldest first."""
    rows = db.execute(
        select(Artifact)
        .join(Submission, Submission.id == Artifact.submission_id)
        .where(Submission.uuid == package_id)
        .order_by(Artifact.id.asc())
    ).scalars()
    return [ArtifactRead.model_validate(r) for r in rows]
