"""Pipeline step protocol and registry.

Each step moves a submission out of one waiting status (see
``biohub.repositories.submission.PENDING_STEPS``) and records the next one.
Steps flush only; the executor owns commits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy.orm import Session

from biohub.clients.search import SearchIndex
from biohub.clients.storage import ObjectStore


class StepResult(dict[str, Any]):
    """Result from a pipeline step, suitable for an API response or a log line."""


@dataclass
class PipelineContext:
    """Clients and reference ids shared by every step of one run."""

    storage: ObjectStore
    search_index: SearchIndex
    style_id: int
    security_schema_id: int
    index_name: str | None = None


class PipelineStep(Protocol):
    def __call__(self, db: Session, submission_id: int, context: PipelineContext) -> StepResult:
        ...


def _validate_step(db: Session, submission_id: int, context: PipelineContext) -> StepResult:
    from biohub.services.validation.engine import validate_submission

    result = validate_submission(db, submission_id, context.style_id, context.storage)
    return StepResult(
        step="validate",
        submission_id=submission_id,
        success=result.validation,
        errors=len(result.errors()),
    )


def _secure_step(db: Session, submission_id: int, context: PipelineContext) -> StepResult:
    from biohub.services.security import secure_submission

    result = secure_submission(db, submission_id, context.security_schema_id, context.storage)
    return StepResult(
        step="secure",
        submission_id=submission_id,
        success=result.success,
        secure=result.secure,
        applied_rules=result.applied_rules,
    )


def _ingest_step(db: Session, submission_id: int, context: PipelineContext) -> StepResult:
    from biohub.schemas.occurrence import ScrapeOutcome
    from biohub.services.ingest import ingest_submission

    result = ingest_submission(db, submission_id, context.storage)
    return StepResult(
        step="ingest",
        submission_id=submission_id,
        success=result.outcome == ScrapeOutcome.COMPLETE,
        outcome=result.outcome.value,
        occurrences=len(result.occurrence_ids),
        failures=len(result.failures),
    )


def _publish_step(db: Session, submission_id: int, context: PipelineContext) -> StepResult:
    from biohub.services.search_indexer import index_submission_metadata

    document = index_submission_metadata(
        db,
        submission_id,
        context.storage,
        context.search_index,
        index_name=context.index_name,
    )
    return StepResult(
        step="publish",
        submission_id=submission_id,
        success=True,
        package_id=document["package_id"],
    )


# Registry: step name -> callable (db, submission_id, context) -> StepResult
STEP_REGISTRY: dict[str, PipelineStep] = {
    "validate": _validate_step,
    "secure": _secure_step,
    "ingest": _ingest_step,
    "publish": _publish_step,
}
