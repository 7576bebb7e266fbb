"""Publish a submission's metadata to the search index.

The document id is the package uuid, so every version of a package replaces
the previous entry instead of adding a new one.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from biohub.clients.search import SearchIndex
from biohub.clients.storage import ObjectStore
from biohub.config import get_settings
from biohub.models.enums import SubmissionStatusType
from biohub.pipeline.state_machine import ensure_transition_allowed, transition_submission
from biohub.repositories.occurrence import count_occurrences_for_submission
from biohub.repositories.submission import get_submission_record_by_submission_id
from biohub.schemas.submission import SubmissionRead
from biohub.services.eml.transform import transform_submission_eml

logger = logging.getLogger(__name__)


def build_search_document(
    submission: SubmissionRead, metadata: dict[str, Any], occurrence_count: int
) -> dict[str, Any]:
    return {
        "package_id": str(submission.uuid),
        "submission_id": submission.id,
        "source": submission.source,
        "occurrence_count": occurrence_count,
        **metadata,
    }


def index_submission_metadata(
    db: Session,
    submission_id: int,
    storage: ObjectStore,
    search_index: SearchIndex,
    index_name: str | None = None,
) -> dict[str, Any]:
    """Transform the submission's EML, replace its search entry and record PUBLISHED."""
    ensure_transition_allowed(db, submission_id, SubmissionStatusType.PUBLISHED)
    index_name = index_name or get_settings().elasticsearch_index
    submission = get_submission_record_by_submission_id(db, submission_id)
    metadata = transform_submission_eml(db, submission.source, submission.eml_source, storage)
    document = build_search_document(
        submission, metadata, count_occurrences_for_submission(db, submission_id)
    )

    package_id = str(submission.uuid)
    search_index.delete(package_id, index_name)
    search_index.upsert(package_id, index_name, document)
    transition_submission(db, submission_id, SubmissionStatusType.PUBLISHED)
    logger.info("Indexed submission %s as %s in %s", submission_id, package_id, index_name)
    return document
