"""Store a submission's worksheets as normalized JSON."""

from __future__ import annotations

from sqlalchemy.orm import Session

from biohub.clients.storage import ObjectStore
from biohub.dwc.normalize import normalize_dwc_archive
from biohub.repositories.submission import (
    get_submission_record_by_submission_id,
    update_submission_record_darwin_core_source,
)
from biohub.services.submission_archive import get_submission_archive


def normalize_submission(db: Session, submission_id: int, storage: ObjectStore) -> str:
    """Write the archive's ``{role: [row dicts]}`` JSON to ``darwin_core_source`` and return it."""
    submission = get_submission_record_by_submission_id(db, submission_id)
    archive = get_submission_archive(submission, storage)
    normalized = normalize_dwc_archive(archive)
    update_submission_record_darwin_core_source(db, submission_id, normalized)
    return normalized
