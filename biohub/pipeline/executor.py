"""Step dispatch for queued submissions.

``run_next_step`` performs one step inside the caller's transaction.
``process_submission`` drives a submission as far as it will go, one
transaction per step, and is what background tasks and the queue script call.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from biohub.db.session import SessionLocal, transaction
from biohub.errors import SubmissionStateError
from biohub.models.enums import SubmissionMessageClass, SubmissionMessageType, SubmissionStatusType
from biohub.pipeline.stages import STEP_REGISTRY, PipelineContext, StepResult
from biohub.pipeline.state_machine import transition_submission
from biohub.repositories.submission import PENDING_STEPS, get_current_submission_status
from biohub.schemas.submission import SubmissionMessageCreate

logger = logging.getLogger(__name__)


def run_step(db: Session, step: str, submission_id: int, context: PipelineContext) -> StepResult:
    """Run a named step. Raises ValueError for unknown step names."""
    handler = STEP_REGISTRY.get(step)
    if not handler:
        raise ValueError(f"Unknown pipeline step: {step}")
    return handler(db, submission_id, context)


def next_step_for(db: Session, submission_id: int) -> str | None:
    current = get_current_submission_status(db, submission_id)
    if current is None:
        return None
    return PENDING_STEPS.get(current.status_type)


def run_next_step(db: Session, submission_id: int, context: PipelineContext) -> StepResult | None:
    """Run the step the submission is waiting on; None when nothing is pending."""
    step = next_step_for(db, submission_id)
    if step is None:
        return None
    return run_step(db, step, submission_id, context)


def record_system_error(
    submission_id: int,
    error: Exception,
    session_factory: Callable[[], Session] = SessionLocal,
) -> bool:
    """Record SYSTEM_ERROR in a fresh transaction. Returns False if the move is not allowed."""
    db = session_factory()
    try:
        with transaction(db):
            transition_submission(
                db,
                submission_id,
                SubmissionStatusType.SYSTEM_ERROR,
                [
                    SubmissionMessageCreate(
                        message_type=SubmissionMessageType.MISCELLANEOUS,
                        message=str(error)[:2000] or error.__class__.__name__,
                        message_class=SubmissionMessageClass.ERROR,
                    )
                ],
            )
        return True
    except SubmissionStateError as exc:
        logger.warning("Submission %s: could not record system error: %s", submission_id, exc.message)
        return False
    finally:
        db.close()


def process_submission(
    submission_id: int,
    context: PipelineContext,
    session_factory: Callable[[], Session] = SessionLocal,
) -> list[StepResult]:
    """Run pending steps until the submission stops advancing.

    Each step commits on its own, so a failure in a later step keeps the
    statuses already recorded. A SubmissionStateError means another runner
    moved the submission first or a newer version retired it, and ends the
    run quietly. Any other error is recorded as SYSTEM_ERROR.
    """
    results: list[StepResult] = []
    for _ in range(len(STEP_REGISTRY)):
        db = session_factory()
        try:
            with transaction(db):
                result = run_next_step(db, submission_id, context)
        except SubmissionStateError as exc:
            logger.info("Submission %s: stopped, %s", submission_id, exc.message)
            break
        except Exception as exc:
            logger.exception("Submission %s: pipeline step failed", submission_id)
            record_system_error(submission_id, exc, session_factory)
            break
        finally:
            db.close()

        if result is None:
            break
        results.append(result)
        logger.info("Submission %s: %s", submission_id, dict(result))
        if not result.get("success"):
            break
    return results
