"""
Intake, normalization and ingest of submissions.
"""

from __future__ import annotations

import json
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from biohub.clients.virus_scan import PassthroughScanner, VirusScanner
from biohub.errors import ApiClientError, ApiExecuteSQLError, ApiGeneralError, SubmissionStateError
from biohub.media.parser import UploadedFile
from biohub.models.enums import SubmissionStatusType
from biohub.models.submission import Submission
from biohub.repositories import occurrence as occurrence_repository
from biohub.repositories.occurrence import count_occurrences_for_submission
from biohub.repositories.submission import (
    get_current_submission_by_uuid,
    get_current_submission_status,
    get_submission_record_by_submission_id,
    list_submission_messages,
    list_submissions_by_uuid,
)
from biohub.schemas.occurrence import ScrapeOutcome
from biohub.services.ingest import ingest_submission
from biohub.services.intake import intake, safe_file_name
from biohub.services.normalize import normalize_submission
from tests.dwca_builder import build_zip


class RejectingScanner(VirusScanner):
    def scan(self, upload: UploadedFile) -> bool:
        return False


def _upload(data: bytes | None = None, filename: str = "dwca.zip") -> UploadedFile:
    return UploadedFile(
        filename=filename, data=build_zip() if data is None else data, content_type="application/zip"
    )


def _submission_count(db: Session) -> int:
    return db.execute(select(func.count()).select_from(Submission)).scalar_one()


@pytest.mark.parametrize(
    "file_name,expected",
    [
        ("dwca.zip", "dwca.zip"),
        ("uploads/2024/dwca.zip", "dwca.zip"),
        ("C:\\Users\\ada\\moose.zip", "moose.zip"),
        ("", "submission.zip"),
        (None, "submission.zip"),
    ],
)
def test_safe_file_name(file_name, expected) -> None:
    assert safe_file_name(file_name) == expected


def test_intake_stores_archive_and_marks_submitted(db: Session, storage, reference_data) -> None:
    package_id = uuid4()
    response = intake(db, _upload(), package_id, reference_data.source, storage, PassthroughScanner())

    assert response.data_package_id == package_id
    submission = get_submission_record_by_submission_id(db, response.submission_id)
    expected_key = f"biohub/datasets/{package_id}/dwca/{response.submission_id}/dwca.zip"
    assert submission.input_key == expected_key
    assert submission.input_file_name == "dwca.zip"
    assert "Skeena moose survey 2024" in submission.eml_source
    stored = storage.get_object(expected_key)
    assert stored.body == build_zip()
    assert stored.content_type == "application/zip"
    assert stored.metadata == {"filename": "dwca.zip"}
    assert get_current_submission_status(db, response.submission_id).status_type == SubmissionStatusType.SUBMITTED


def test_intake_rejects_infected_upload_before_writing(db: Session, storage, reference_data) -> None:
    with pytest.raises(ApiClientError) as exc_info:
        intake(db, _upload(), uuid4(), reference_data.source, storage, RejectingScanner())
    assert exc_info.value.message == "Malicious content detected, upload cancelled"
    assert _submission_count(db) == 0
    assert list(storage.objects) == [reference_data.stylesheet_key]


def test_intake_rejects_unreadable_zip(db: Session, storage, reference_data) -> None:
    with pytest.raises(ApiClientError) as exc_info:
        intake(db, _upload(b"not a zip"), uuid4(), reference_data.source, storage, PassthroughScanner())
    assert exc_info.value.message == "Failed to parse submission"
    assert _submission_count(db) == 0


def test_intake_rejects_non_archive(db: Session, storage, reference_data) -> None:
    upload = _upload(b"id,eventDate\n", filename="event.csv")
    with pytest.raises(ApiClientError) as exc_info:
        intake(db, upload, uuid4(), reference_data.source, storage, PassthroughScanner())
    assert exc_info.value.message == "Media is not a valid DwC Archive File"
    assert list(storage.objects) == [reference_data.stylesheet_key]


def test_resubmission_retires_previous_version(db: Session, make_submission) -> None:
    package_id = uuid4()
    first = make_submission(package_id=package_id).submission_id
    second = make_submission(package_id=package_id).submission_id

    versions = list_submissions_by_uuid(db, package_id)
    assert [v.id for v in versions] == [first, second]
    assert versions[0].end_timestamp is not None
    assert versions[1].end_timestamp is None
    assert get_current_submission_by_uuid(db, package_id).id == second


def test_normalize_submission_stores_worksheets(db: Session, make_submission, storage) -> None:
    submission_id = make_submission().submission_id
    document = json.loads(normalize_submission(db, submission_id, storage))
    assert sorted(document) == ["event", "occurrence", "taxon"]
    assert document["taxon"][1] == {"id": "ev-2", "vernacularName": "moose calf"}
    stored = get_submission_record_by_submission_id(db, submission_id).darwin_core_source
    assert json.loads(stored) == document


def test_normalize_missing_archive_raises(db: Session, make_submission, storage) -> None:
    submission_id = make_submission().submission_id
    storage.objects.clear()
    with pytest.raises(ApiGeneralError) as exc_info:
        normalize_submission(db, submission_id, storage)
    assert exc_info.value.message == "s3 file unavailable"


def test_ingest_complete(db: Session, advance_submission, storage) -> None:
    submission_id = advance_submission(until="secure")
    result = ingest_submission(db, submission_id, storage)

    assert result.outcome == ScrapeOutcome.COMPLETE
    assert len(result.occurrence_ids) == 2
    assert count_occurrences_for_submission(db, submission_id) == 2
    submission = get_submission_record_by_submission_id(db, submission_id)
    assert json.loads(submission.darwin_core_source)["occurrence"][0]["associatedTaxa"] == "M-ALAM"
    assert (
        get_current_submission_status(db, submission_id).status_type
        == SubmissionStatusType.SUBMISSION_DATA_INGESTED
    )


def test_ingest_partial_rejects_with_row_messages(db: Session, advance_submission, storage) -> None:
    submission_id = advance_submission(until="secure")
    real_insert = occurrence_repository.insert_occurrence

    def fail_second_row(session, sid, occurrence):
        if occurrence.row_number == 2:
            raise ApiExecuteSQLError("Failed to insert occurrence record")
        return real_insert(session, sid, occurrence)

    with patch("biohub.services.occurrence_scraper.insert_occurrence", side_effect=fail_second_row):
        result = ingest_submission(db, submission_id, storage)

    assert result.outcome == ScrapeOutcome.PARTIAL
    assert count_occurrences_for_submission(db, submission_id) == 1
    assert get_current_submission_status(db, submission_id).status_type == SubmissionStatusType.REJECTED
    assert [m.message for m in list_submission_messages(db, submission_id)] == [
        "occurrence row 2 (id=ev-2): Failed to insert occurrence record"
    ]
    assert get_submission_record_by_submission_id(db, submission_id).darwin_core_source is None


def test_ingest_before_security_review_is_refused(db: Session, advance_submission, storage) -> None:
    submission_id = advance_submission(until="validate")
    with pytest.raises(SubmissionStateError):
        ingest_submission(db, submission_id, storage)
    assert count_occurrences_for_submission(db, submission_id) == 0
