"""Ingest step: scrape occurrences and store the normalized archive."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from biohub.clients.storage import ObjectStore
from biohub.dwc.normalize import normalize_dwc_archive
from biohub.models.enums import SubmissionMessageClass, SubmissionMessageType, SubmissionStatusType
from biohub.pipeline.state_machine import ensure_transition_allowed, transition_submission
from biohub.repositories.submission import (
    get_submission_record_by_submission_id,
    update_submission_record_darwin_core_source,
)
from biohub.schemas.occurrence import ScrapeOutcome, ScrapeResult
from biohub.schemas.submission import SubmissionMessageCreate
from biohub.services.occurrence_scraper import scrape_and_upload_occurrences
from biohub.services.submission_archive import get_submission_archive

logger = logging.getLogger(__name__)


def ingest_submission(db: Session, submission_id: int, storage: ObjectStore) -> ScrapeResult:
    """Scrape occurrences; COMPLETE records SUBMISSION_DATA_INGESTED, anything else REJECTED.

    Rows inserted before a failing row are kept. The rejection carries one
    message per failed row so the submitter can fix and resubmit.
    """
    ensure_transition_allowed(db, submission_id, SubmissionStatusType.SUBMISSION_DATA_INGESTED)
    submission = get_submission_record_by_submission_id(db, submission_id)
    archive = get_submission_archive(submission, storage)

    result = scrape_and_upload_occurrences(db, submission_id, archive)
    if result.outcome == ScrapeOutcome.COMPLETE:
        update_submission_record_darwin_core_source(
            db, submission_id, normalize_dwc_archive(archive)
        )
        transition_submission(db, submission_id, SubmissionStatusType.SUBMISSION_DATA_INGESTED)
    else:
        transition_submission(
            db,
            submission_id,
            SubmissionStatusType.REJECTED,
            [
                SubmissionMessageCreate(
                    message_type=SubmissionMessageType.MISCELLANEOUS,
                    message=(
                        f"occurrence row {failure.row_number} (id={failure.join_key}): {failure.message}"
                    ),
                    message_class=SubmissionMessageClass.ERROR,
                )
                for failure in result.failures
            ],
        )
    logger.info("Ingest of submission %s finished: %s", submission_id, result.outcome.value)
    return result
