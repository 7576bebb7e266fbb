"""Submission pipeline routes.

Each route runs one pipeline operation in its own transaction. Intake
acknowledges the caller once the upload is stored and hands the remaining
steps to a background task.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from biohub.api.deps import (
    get_db,
    get_is_admin,
    get_pipeline_context,
    get_scanner,
    get_search,
    get_service_constants,
    get_session_factory,
    get_storage,
    require_service_token,
)
from biohub.clients.search import SearchIndex
from biohub.clients.storage import ObjectStore
from biohub.clients.virus_scan import VirusScanner
from biohub.config import get_settings
from biohub.constants import ServiceConstants
from biohub.db.session import transaction
from biohub.errors import ApiClientError
from biohub.media.parser import UploadedFile
from biohub.pipeline.executor import process_submission, run_next_step
from biohub.pipeline.stages import PipelineContext
from biohub.repositories.submission import (
    get_current_submission_status,
    get_submission_job_queue,
    get_submission_record_by_submission_id,
    list_submission_messages,
    list_submission_statuses,
)
from biohub.schemas.artifact import ArtifactRead
from biohub.schemas.occurrence import ScrapeResult
from biohub.schemas.security import SecurityResult, SecurityStatusRead
from biohub.schemas.submission import (
    IntakeResponse,
    SubmissionHistoryRead,
    SubmissionJobQueueItem,
)
from biohub.schemas.validation import ValidationResult
from biohub.services.ingest import ingest_submission
from biohub.services.intake import intake
from biohub.services.normalize import normalize_submission
from biohub.services.search_indexer import index_submission_metadata
from biohub.services.security import (
    get_submission_security_status,
    list_accessible_artifacts,
    secure_submission,
)
from biohub.services.validation.engine import validate_submission

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_service_token)])


def read_upload(media: UploadFile) -> UploadedFile:
    """Read a multipart file, refusing bodies over MAX_UPLOAD_BYTES."""
    limit = get_settings().max_upload_bytes
    data = media.file.read(limit + 1)
    if len(data) > limit:
        raise ApiClientError("Upload exceeds the maximum allowed size", [f"max_bytes={limit}"])
    return UploadedFile(filename=media.filename or "", data=data, content_type=media.content_type)


@router.post("/submission/intake", response_model=IntakeResponse)
def api_submission_intake(
    background_tasks: BackgroundTasks,
    media: UploadFile = File(...),
    data_package_id: UUID = Form(...),
    source: str | None = Form(None),
    db: Session = Depends(get_db),
    storage: ObjectStore = Depends(get_storage),
    scanner: VirusScanner = Depends(get_scanner),
    constants: ServiceConstants = Depends(get_service_constants),
    context: PipelineContext = Depends(get_pipeline_context),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> IntakeResponse:
    """Store a DwC archive as the new current version of ``data_package_id``.

    Validation, security review, ingest and publish continue in the
    background once the response is sent.
    """
    source = constants.require_known_source(source or get_settings().default_source)
    upload = read_upload(media)
    with transaction(db):
        response = intake(db, upload, data_package_id, source, storage, scanner)
    background_tasks.add_task(process_submission, response.submission_id, context, session_factory)
    return response


@router.get("/submission/queue", response_model=list[SubmissionJobQueueItem])
def api_submission_queue(
    limit: int | None = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[SubmissionJobQueueItem]:
    """Current submissions waiting on a pipeline step, oldest first."""
    return get_submission_job_queue(db, limit=limit)


@router.post("/submission/{submission_id}/validate", response_model=ValidationResult)
def api_submission_validate(
    submission_id: int,
    style_id: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
    storage: ObjectStore = Depends(get_storage),
) -> ValidationResult:
    style_id = style_id or get_settings().default_style_schema_id
    with transaction(db):
        return validate_submission(db, submission_id, style_id, storage)


@router.post("/submission/{submission_id}/secure", response_model=SecurityResult)
def api_submission_secure(
    submission_id: int,
    security_schema_id: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
    storage: ObjectStore = Depends(get_storage),
) -> SecurityResult:
    security_schema_id = security_schema_id or get_settings().default_security_schema_id
    with transaction(db):
        return secure_submission(db, submission_id, security_schema_id, storage)


@router.get("/submission/{submission_id}/security", response_model=SecurityStatusRead)
def api_submission_security_status(
    submission_id: int,
    db: Session = Depends(get_db),
) -> SecurityStatusRead:
    return get_submission_security_status(db, submission_id)


@router.post("/submission/{submission_id}/normalize")
def api_submission_normalize(
    submission_id: int,
    db: Session = Depends(get_db),
    storage: ObjectStore = Depends(get_storage),
) -> Response:
    """Store and return the archive's worksheets as ``{role: [rows]}`` JSON."""
    with transaction(db):
        normalized = normalize_submission(db, submission_id, storage)
    return Response(content=normalized, media_type="application/json")


@router.post("/submission/{submission_id}/scrape-occurrences", response_model=ScrapeResult)
def api_submission_scrape_occurrences(
    submission_id: int,
    db: Session = Depends(get_db),
    storage: ObjectStore = Depends(get_storage),
) -> ScrapeResult:
    with transaction(db):
        return ingest_submission(db, submission_id, storage)


@router.post("/submission/{submission_id}/publish")
def api_submission_publish(
    submission_id: int,
    db: Session = Depends(get_db),
    storage: ObjectStore = Depends(get_storage),
    search_index: SearchIndex = Depends(get_search),
) -> dict:
    with transaction(db):
        document = index_submission_metadata(
            db,
            submission_id,
            storage,
            search_index,
            index_name=get_settings().elasticsearch_index,
        )
    return {"package_id": document["package_id"], "indexed": True}


@router.post("/submission/{submission_id}/next-step")
def api_submission_next_step(
    submission_id: int,
    db: Session = Depends(get_db),
    context: PipelineContext = Depends(get_pipeline_context),
) -> dict:
    """Run the one step the submission is waiting on, if any."""
    with transaction(db):
        result = run_next_step(db, submission_id, context)
    if result is None:
        return {"submission_id": submission_id, "step": None}
    return dict(result)


@router.get("/submission/{submission_id}/status", response_model=SubmissionHistoryRead)
def api_submission_status(
    submission_id: int,
    db: Session = Depends(get_db),
) -> SubmissionHistoryRead:
    submission = get_submission_record_by_submission_id(db, submission_id)
    current = get_current_submission_status(db, submission_id)
    return SubmissionHistoryRead(
        submission_id=submission.id,
        package_id=submission.uuid,
        current_status=current.status_type if current is not None else None,
        statuses=list_submission_statuses(db, submission_id),
        messages=list_submission_messages(db, submission_id),
    )


@router.get("/submission/{submission_id}/artifacts", response_model=list[ArtifactRead])
def api_submission_artifacts(
    submission_id: int,
    db: Session = Depends(get_db),
    is_admin: bool = Depends(get_is_admin),
) -> list[ArtifactRead]:
    return list_accessible_artifacts(db, submission_id, is_admin)
