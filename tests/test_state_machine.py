"""
Submission state machine tests.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from biohub.errors import ApiClientError, SubmissionStateError
from biohub.models.enums import SubmissionMessageClass, SubmissionMessageType, SubmissionStatusType
from biohub.pipeline.state_machine import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    can_transition,
    transition_submission,
)
from biohub.repositories.submission import (
    get_current_submission_status,
    insert_submission_record_with_potential_conflict,
    list_submission_messages,
    list_submission_statuses,
)
from biohub.schemas.submission import SubmissionMessageCreate, SubmissionRecordInsert

S = SubmissionStatusType


@pytest.fixture
def submission_id(db: Session) -> int:
    return insert_submission_record_with_potential_conflict(
        db, SubmissionRecordInsert(uuid=uuid4(), source="BIOHUB")
    ).id


def test_every_status_has_an_entry() -> None:
    assert set(ALLOWED_TRANSITIONS) == set(SubmissionStatusType) | {None}


def test_terminal_statuses() -> None:
    assert TERMINAL_STATUSES == {S.REJECTED, S.SYSTEM_ERROR}


@pytest.mark.parametrize(
    "from_status,to_status,allowed",
    [
        (None, S.SUBMITTED, True),
        (None, S.DARWIN_CORE_VALIDATED, False),
        (S.SUBMITTED, S.DARWIN_CORE_VALIDATED, True),
        (S.SUBMITTED, S.PUBLISHED, False),
        (S.DARWIN_CORE_VALIDATED, S.SECURED, True),
        (S.SECURED, S.SUBMISSION_DATA_INGESTED, True),
        (S.SUBMISSION_DATA_INGESTED, S.PUBLISHED, True),
        (S.PUBLISHED, S.SECURED, True),
        (S.PUBLISHED, S.PUBLISHED, False),
        (S.REJECTED, S.SUBMITTED, False),
        (S.SYSTEM_ERROR, S.SUBMITTED, False),
    ],
)
def test_can_transition(from_status, to_status, allowed) -> None:
    assert can_transition(from_status, to_status) is allowed


def test_happy_path_records_each_status(db: Session, submission_id: int) -> None:
    for status in (
        S.SUBMITTED,
        S.DARWIN_CORE_VALIDATED,
        S.SECURED,
        S.SUBMISSION_DATA_INGESTED,
        S.PUBLISHED,
    ):
        transition_submission(db, submission_id, status)
    assert [s.status_type for s in list_submission_statuses(db, submission_id)] == [
        S.SUBMITTED,
        S.DARWIN_CORE_VALIDATED,
        S.SECURED,
        S.SUBMISSION_DATA_INGESTED,
        S.PUBLISHED,
    ]


def test_illegal_transition_is_refused_and_writes_nothing(db: Session, submission_id: int) -> None:
    transition_submission(db, submission_id, S.SUBMITTED)
    with pytest.raises(SubmissionStateError) as exc_info:
        transition_submission(db, submission_id, S.PUBLISHED)
    assert exc_info.value.status_code == 409
    assert "Submitted" in exc_info.value.message
    assert get_current_submission_status(db, submission_id).status_type == S.SUBMITTED


def test_rejected_is_terminal(db: Session, submission_id: int) -> None:
    transition_submission(db, submission_id, S.SUBMITTED)
    transition_submission(db, submission_id, S.REJECTED)
    with pytest.raises(SubmissionStateError):
        transition_submission(db, submission_id, S.DARWIN_CORE_VALIDATED)


def test_messages_attach_to_the_new_status(db: Session, submission_id: int) -> None:
    transition_submission(db, submission_id, S.SUBMITTED)
    status = transition_submission(
        db,
        submission_id,
        S.REJECTED,
        [
            SubmissionMessageCreate(
                message_type=SubmissionMessageType.DANGLING_REFERENCE,
                message="occurrence.txt, row 3, id: Value 'x' has no match in event.id",
            ),
            SubmissionMessageCreate(
                message_type=SubmissionMessageType.MISSING_RECOMMENDED_HEADER,
                message="taxon.txt, vernacularName: Missing recommended header",
                message_class=SubmissionMessageClass.WARNING,
            ),
        ],
    )
    messages = list_submission_messages(db, submission_id)
    assert [m.submission_status_id for m in messages] == [status.id, status.id]
    assert [m.message_class for m in messages] == [
        SubmissionMessageClass.ERROR,
        SubmissionMessageClass.WARNING,
    ]


def test_transition_on_missing_submission_raises_client_error(db: Session) -> None:
    with pytest.raises(ApiClientError):
        transition_submission(db, 12345, S.SUBMITTED)


def test_retired_submission_cannot_advance(db: Session) -> None:
    package_id = uuid4()
    first = insert_submission_record_with_potential_conflict(
        db, SubmissionRecordInsert(uuid=package_id, source="BIOHUB")
    ).id
    transition_submission(db, first, S.SUBMITTED)
    insert_submission_record_with_potential_conflict(
        db, SubmissionRecordInsert(uuid=package_id, source="BIOHUB")
    )

    with pytest.raises(SubmissionStateError) as exc_info:
        transition_submission(db, first, S.DARWIN_CORE_VALIDATED)
    assert exc_info.value.status_code == 409
    assert exc_info.value.message == "Cannot move retired submission to Darwin Core Validated"
    assert get_current_submission_status(db, first).status_type == S.SUBMITTED

    transition_submission(db, first, S.REJECTED)
    assert get_current_submission_status(db, first).status_type == S.REJECTED
