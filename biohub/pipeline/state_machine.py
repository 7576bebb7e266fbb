"""Submission status state machine.

Every status write goes through :func:`transition_submission`. It locks the
submission row, checks the move against ``ALLOWED_TRANSITIONS`` and only then
appends the status and its messages. Two runners racing on one submission are
serialized by the lock; the loser sees the winner's status and gets a
SubmissionStateError instead of writing a contradictory history.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.orm import Session

from biohub.errors import SubmissionStateError
from biohub.models.enums import SubmissionStatusType
from biohub.repositories.submission import (
    get_current_submission_status,
    insert_submission_message,
    insert_submission_status,
    lock_submission,
)
from biohub.schemas.submission import SubmissionMessageCreate, SubmissionStatusRead

logger = logging.getLogger(__name__)

S = SubmissionStatusType

ALLOWED_TRANSITIONS: dict[SubmissionStatusType | None, frozenset[SubmissionStatusType]] = {
    None: frozenset({S.SUBMITTED}),
    S.SUBMITTED: frozenset({S.DARWIN_CORE_VALIDATED, S.REJECTED, S.SYSTEM_ERROR}),
    S.DARWIN_CORE_VALIDATED: frozenset({S.SECURED, S.REJECTED, S.SYSTEM_ERROR}),
    S.SECURED: frozenset({S.SUBMISSION_DATA_INGESTED, S.SECURED, S.REJECTED, S.SYSTEM_ERROR}),
    S.SUBMISSION_DATA_INGESTED: frozenset({S.PUBLISHED, S.SECURED, S.REJECTED, S.SYSTEM_ERROR}),
    S.PUBLISHED: frozenset({S.SECURED, S.REJECTED}),
    S.REJECTED: frozenset(),
    S.SYSTEM_ERROR: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if status is not None and not targets
)

# A retired version (end_timestamp set) may only be closed out, never advanced.
RETIRED_TRANSITIONS = frozenset({S.REJECTED, S.SYSTEM_ERROR})


def can_transition(
    from_status: SubmissionStatusType | None, to_status: SubmissionStatusType
) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def ensure_transition_allowed(
    db: Session, submission_id: int, to_status: SubmissionStatusType
) -> SubmissionStatusType | None:
    """Lock the submission and raise SubmissionStateError unless ``to_status`` is reachable.

    Returns the current status. Steps with side effects outside the database
    call this before touching them. A submission retired by a newer version of
    its package can only move to REJECTED or SYSTEM_ERROR.
    """
    submission = lock_submission(db, submission_id)
    if submission.end_timestamp is not None and to_status not in RETIRED_TRANSITIONS:
        raise SubmissionStateError(
            f"Cannot move retired submission to {to_status.value}",
            [f"submission_id={submission_id}", f"package_id={submission.uuid}"],
        )
    current = get_current_submission_status(db, submission_id)
    from_status = current.status_type if current is not None else None
    if not can_transition(from_status, to_status):
        from_label = from_status.value if from_status is not None else "none"
        raise SubmissionStateError(
            f"Cannot move submission from {from_label} to {to_status.value}",
            [f"submission_id={submission_id}"],
        )
    return from_status


def transition_submission(
    db: Session,
    submission_id: int,
    to_status: SubmissionStatusType,
    messages: Iterable[SubmissionMessageCreate] = (),
) -> SubmissionStatusRead:
    """Append ``to_status`` (and its messages) if the move is legal.

    Raises:
        ApiClientError: submission does not exist.
        SubmissionStateError: move not allowed from the current status.
    """
    from_status = ensure_transition_allowed(db, submission_id, to_status)
    status = insert_submission_status(db, submission_id, to_status)
    for message in messages:
        insert_submission_message(
            db,
            status.id,
            message.message_type,
            message.message,
            message.message_class,
        )
    logger.info(
        "Submission %s: %s -> %s",
        submission_id,
        from_status.value if from_status is not None else "none",
        to_status.value,
    )
    return status
