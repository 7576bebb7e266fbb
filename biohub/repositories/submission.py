"""Submission repository: versioned records and append-only status/message history.

Caller contract:
    Functions only flush. The caller owns the transaction (see
    ``biohub.db.session.transaction``). Any insert or update that must touch
    exactly one row raises ApiExecuteSQLError with a breadcrumb when it touches
    none.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, insert, select, update
from sqlalchemy.orm import Session

from biohub.errors import ApiClientError, ApiExecuteSQLError
from biohub.models.enums import (
    SubmissionMessageClass,
    SubmissionMessageType,
    SubmissionStatusType,
)
from biohub.models.submission import Submission
from biohub.models.submission_status import SubmissionMessage, SubmissionStatus
from biohub.schemas.submission import (
    SubmissionJobQueueItem,
    SubmissionMessageRead,
    SubmissionRead,
    SubmissionRecordInsert,
    SubmissionStatusRead,
    SubmissionWithStatusRead,
)

_EXPECTED_ONE_ROW = "rowCount was null or undefined, expected rowCount = 1"

# Status a submission waits in -> the step that moves it forward
PENDING_STEPS: dict[SubmissionStatusType, str] = {
    SubmissionStatusType.SUBMITTED: "validate",
    SubmissionStatusType.DARWIN_CORE_VALIDATED: "secure",
    SubmissionStatusType.SECURED: "ingest",
    SubmissionStatusType.SUBMISSION_DATA_INGESTED: "publish",
}


def _breadcrumb(operation: str) -> list[str]:
    return [f"SubmissionRepository->{operation}", _EXPECTED_ONE_ROW]


def insert_submission_record(db: Session, record: SubmissionRecordInsert) -> SubmissionRead:
    """Insert a submission row. Does not check for an existing current row."""
    row = db.execute(
        insert(Submission).values(**record.model_dump()).returning(Submission)
    ).scalar_one_or_none()
    if row is None:
        raise ApiExecuteSQLError(
            "Failed to insert submission record", _breadcrumb("insert_submission_record")
        )
    return SubmissionRead.model_validate(row)


def insert_submission_record_with_potential_conflict(
    db: Session, record: SubmissionRecordInsert
) -> SubmissionRead:
    """Retire the current row for ``record.uuid`` (if any), then insert the new version.

    Both statements run in the caller's transaction so there is never a moment
    with two current rows, nor with zero after a successful insert.
    """
    retire_current_submission(db, record.uuid)
    return insert_submission_record(db, record)


def retire_current_submission(db: Session, package_id: UUID) -> list[int]:
    """Set end_timestamp on the current row for ``package_id``. Returns the retired ids."""
    return list(
        db.execute(
            update(Submission)
            .where(Submission.uuid == package_id, Submission.end_timestamp.is_(None))
            .values(end_timestamp=datetime.now(UTC))
            .returning(Submission.id)
        ).scalars()
    )


def _update_submission(db: Session, submission_id: int, operation: str, **values) -> SubmissionRead:
    row = db.execute(
        update(Submission)
        .where(Submission.id == submission_id)
        .values(**values)
        .returning(Submission)
    ).scalar_one_or_none()
    if row is None:
        raise ApiExecuteSQLError("Failed to update submission record", _breadcrumb(operation))
    return SubmissionRead.model_validate(row)


def update_submission_record_input_key(db: Session, submission_id: int, input_key: str) -> SubmissionRead:
    return _update_submission(
        db, submission_id, "update_submission_record_input_key", input_key=input_key
    )


def update_submission_record_darwin_core_source(
    db: Session, submission_id: int, darwin_core_source: str
) -> SubmissionRead:
    return _update_submission(
        db,
        submission_id,
        "update_submission_record_darwin_core_source",
        darwin_core_source=darwin_core_source,
    )


def update_submission_record_eml_source(db: Session, submission_id: int, eml_source: str) -> SubmissionRead:
    return _update_submission(
        db, submission_id, "update_submission_record_eml_source", eml_source=eml_source
    )


def update_submission_security_review_timestamp(db: Session, submission_id: int) -> SubmissionRead:
    return _update_submission(
        db,
        submission_id,
        "update_submission_security_review_timestamp",
        security_review_timestamp=datetime.now(UTC),
    )


def get_submission_record_by_submission_id(db: Session, submission_id: int) -> SubmissionRead:
    """Return the submission row. Raises ApiClientError when it does not exist."""
    row = db.get(Submission, submission_id)
    if row is None:
        raise ApiClientError(
            "Failed to get submission record",
            [f"SubmissionRepository->get_submission_record_by_submission_id: no submission {submission_id}"],
        )
    return SubmissionRead.model_validate(row)


def lock_submission(db: Session, submission_id: int) -> SubmissionRead:
    """SELECT ... FOR UPDATE on the submission row; serializes pipeline steps per submission."""
    row = db.execute(
        select(Submission)
        .where(Submission.id == submission_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if row is None:
        raise ApiClientError(
            "Failed to get submission record",
            [f"SubmissionRepository->lock_submission: no submission {submission_id}"],
        )
    return SubmissionRead.model_validate(row)


def get_current_submission_by_uuid(db: Session, package_id: UUID) -> SubmissionRead | None:
    row = db.execute(
        select(Submission).where(Submission.uuid == package_id, Submission.end_timestamp.is_(None))
    ).scalar_one_or_none()
    if row is None:
        return None
    return SubmissionRead.model_validate(row)


def list_submissions_by_uuid(db: Session, package_id: UUID) -> list[SubmissionRead]:
    """Every version of a package, oldest first."""
    rows = db.execute(
        select(Submission).where(Submission.uuid == package_id).order_by(Submission.id.asc())
    ).scalars()
    return [SubmissionRead.model_validate(r) for r in rows]


def insert_submission_status(
    db: Session, submission_id: int, status_type: SubmissionStatusType
) -> SubmissionStatusRead:
    row = db.execute(
        insert(SubmissionStatus)
        .values(submission_id=submission_id, status_type=status_type.value)
        .returning(SubmissionStatus)
    ).scalar_one_or_none()
    if row is None:
        raise ApiExecuteSQLError(
            "Failed to insert submission status record", _breadcrumb("insert_submission_status")
        )
    return SubmissionStatusRead.model_validate(row)


def insert_submission_message(
    db: Session,
    submission_status_id: int,
    message_type: SubmissionMessageType,
    message: str | None = None,
    message_class: SubmissionMessageClass = SubmissionMessageClass.ERROR,
) -> SubmissionMessageRead:
    row = db.execute(
        insert(SubmissionMessage)
        .values(
            submission_status_id=submission_status_id,
            message_type=message_type.value,
            message_class=message_class.value,
            message=message,
        )
        .returning(SubmissionMessage)
    ).scalar_one_or_none()
    if row is None:
        raise ApiExecuteSQLError(
            "Failed to insert submission message record", _breadcrumb("insert_submission_message")
        )
    return SubmissionMessageRead.model_validate(row)


def list_submission_statuses(db: Session, submission_id: int) -> list[SubmissionStatusRead]:
    """Status history ordered by (event_timestamp, id)."""
    rows = db.execute(
        select(SubmissionStatus)
        .where(SubmissionStatus.submission_id == submission_id)
        .order_by(SubmissionStatus.event_timestamp.asc(), SubmissionStatus.id.asc())
    ).scalars()
    return [SubmissionStatusRead.model_validate(r) for r in rows]


def get_current_submission_status(db: Session, submission_id: int) -> SubmissionStatusRead | None:
    row = db.execute(
        select(SubmissionStatus)
        .where(SubmissionStatus.submission_id == submission_id)
        .order_by(SubmissionStatus.event_timestamp.desc(), SubmissionStatus.id.desc())
        .limit(1)
    ).scalar_one_or_none()
    if row is None:
        return None
    return SubmissionStatusRead.model_validate(row)


def list_submission_messages(db: Session, submission_id: int) -> list[SubmissionMessageRead]:
    rows = db.execute(
        select(SubmissionMessage)
        .join(SubmissionStatus, SubmissionStatus.id == SubmissionMessage.submission_status_id)
        .where(SubmissionStatus.submission_id == submission_id)
        .order_by(SubmissionMessage.id.asc())
    ).scalars()
    return [SubmissionMessageRead.model_validate(r) for r in rows]


def _latest_status_subquery():
    ranked = select(
        SubmissionStatus.submission_id.label("submission_id"),
        SubmissionStatus.status_type.label("status_type"),
        SubmissionStatus.event_timestamp.label("event_timestamp"),
        func.row_number()
        .over(
            partition_by=SubmissionStatus.submission_id,
            order_by=(SubmissionStatus.event_timestamp.desc(), SubmissionStatus.id.desc()),
        )
        .label("rank"),
    ).subquery()
    return select(ranked).where(ranked.c.rank == 1).subquery()


def list_submission_records_with_status(db: Session) -> list[SubmissionWithStatusRead]:
    """Current submissions, newest first, each with its latest status."""
    latest = _latest_status_subquery()
    rows = db.execute(
        select(Submission, latest.c.status_type)
        .outerjoin(latest, latest.c.submission_id == Submission.id)
        .where(Submission.end_timestamp.is_(None))
        .order_by(Submission.id.desc())
    ).all()
    return [
        SubmissionWithStatusRead(
            submission=SubmissionRead.model_validate(submission),
            status=SubmissionStatusType(status_type) if status_type else None,
        )
        for submission, status_type in rows
    ]


def get_submission_job_queue(db: Session, limit: int | None = None) -> list[SubmissionJobQueueItem]:
    """Current submissions waiting on a pipeline step, oldest status first."""
    latest = _latest_status_subquery()
    stmt = (
        select(Submission.id, Submission.uuid, latest.c.status_type, latest.c.event_timestamp)
        .join(latest, latest.c.submission_id == Submission.id)
        .where(
            Submission.end_timestamp.is_(None),
            latest.c.status_type.in_([status.value for status in PENDING_STEPS]),
        )
        .order_by(latest.c.event_timestamp.asc(), Submission.id.asc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    items = []
    for submission_id, package_id, status_type, status_timestamp in db.execute(stmt).all():
        status = SubmissionStatusType(status_type)
        items.append(
            SubmissionJobQueueItem(
                submission_id=submission_id,
                package_id=package_id,
                status=status,
                next_step=PENDING_STEPS[status],
                status_timestamp=status_timestamp,
            )
        )
    return items
