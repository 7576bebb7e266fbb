"""Intake of an uploaded DwC archive: scan, parse, version, store, mark SUBMITTED."""

from __future__ import annotations

import logging
import posixpath
from uuid import UUID

from sqlalchemy.orm import Session

from biohub.clients.storage import ObjectStore, generate_dataset_key
from biohub.clients.virus_scan import VirusScanner
from biohub.dwc.archive import DWCArchive
from biohub.errors import ApiClientError
from biohub.media.parser import UploadedFile, parse_unknown_media
from biohub.models.enums import SubmissionStatusType
from biohub.pipeline.state_machine import transition_submission
from biohub.repositories.submission import (
    insert_submission_record_with_potential_conflict,
    update_submission_record_input_key,
)
from biohub.schemas.submission import IntakeResponse, SubmissionRecordInsert

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "submission.zip"


def safe_file_name(file_name: str | None) -> str:
    """Base name of a client-supplied file name, usable as a storage key segment."""
    base_name = posixpath.basename((file_name or "").replace("\\", "/")).strip()
    return base_name or DEFAULT_FILE_NAME


def intake(
    db: Session,
    upload: UploadedFile,
    package_id: UUID,
    source: str,
    storage: ObjectStore,
    scanner: VirusScanner,
) -> IntakeResponse:
    """Accept an upload as the new current version of ``package_id``.

    Scan and parse failures raise before any database write. The stored
    object is written outside the database transaction; if the transaction
    later rolls back the object is orphaned, which is logged by the caller.
    """
    if not scanner.scan(upload):
        logger.warning("Upload for package %s failed virus scan", package_id)
        raise ApiClientError("Malicious content detected, upload cancelled")

    media = parse_unknown_media(upload)
    if media is None:
        raise ApiClientError("Failed to parse submission", [f"file_name={upload.filename}"])
    archive = DWCArchive.from_media(media)

    file_name = safe_file_name(upload.filename)
    submission = insert_submission_record_with_potential_conflict(
        db,
        SubmissionRecordInsert(
            uuid=package_id,
            source=source,
            input_file_name=file_name,
            eml_source=archive.eml_text(),
        ),
    )

    key = generate_dataset_key(package_id, submission.id, file_name)
    storage.put_object(
        key,
        upload.data,
        content_type=media.mimetype,
        metadata={"filename": file_name},
    )
    update_submission_record_input_key(db, submission.id, key)
    transition_submission(db, submission.id, SubmissionStatusType.SUBMITTED)
    logger.info("Intake of package %s stored as submission %s (%s)", package_id, submission.id, key)
    return IntakeResponse(data_package_id=package_id, submission_id=submission.id)
