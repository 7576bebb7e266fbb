"""Artifacts: supplementary files attached to the current version of a package."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from biohub.clients.storage import ObjectStore, generate_artifact_key
from biohub.clients.virus_scan import VirusScanner
from biohub.errors import ApiClientError
from biohub.media.parser import UploadedFile, guess_mimetype
from biohub.repositories.artifact import insert_artifact, update_artifact_key
from biohub.repositories.submission import get_current_submission_by_uuid
from biohub.schemas.artifact import ArtifactRead, ArtifactSignedUrl
from biohub.services.intake import safe_file_name
from biohub.services.security import get_accessible_artifact

logger = logging.getLogger(__name__)


def intake_artifact(
    db: Session,
    upload: UploadedFile,
    package_id: UUID,
    storage: ObjectStore,
    scanner: VirusScanner,
    title: str | None = None,
    description: str | None = None,
) -> ArtifactRead:
    if not upload.data:
        raise ApiClientError("Missing required `media`")
    if not scanner.scan(upload):
        raise ApiClientError("Malicious content detected, upload cancelled")
    submission = get_current_submission_by_uuid(db, package_id)
    if submission is None:
        raise ApiClientError("No current submission for package", [f"package_id={package_id}"])

    file_name = safe_file_name(upload.filename)
    file_type = guess_mimetype(file_name)
    artifact = insert_artifact(
        db,
        submission_id=submission.id,
        file_name=file_name,
        file_type=file_type,
        file_size=len(upload.data),
        title=title,
        description=description,
    )
    key = generate_artifact_key(package_id, artifact.id, file_name)
    storage.put_object(key, upload.data, content_type=file_type, metadata={"filename": file_name})
    logger.info("Artifact %s stored for submission %s", artifact.id, submission.id)
    return update_artifact_key(db, artifact.id, key)


def get_artifact_signed_url(
    db: Session, artifact_id: int, is_admin: bool, storage: ObjectStore, expires_in: int
) -> ArtifactSignedUrl:
    """Signed download URL; the artifact's submission must be visible to the caller."""
    artifact = get_accessible_artifact(db, artifact_id, is_admin)
    if not artifact.key:
        raise ApiClientError("Artifact has no stored file", [f"artifact_id={artifact_id}"])
    return ArtifactSignedUrl(
        artifact_id=artifact.id,
        url=storage.signed_url(artifact.key, expires_in),
        expires_in=expires_in,
    )
