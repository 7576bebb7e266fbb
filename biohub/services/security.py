"""Security classification of submissions and the per-request access gate.

A security schema is a list of rules of the form "worksheet.field has one of
these values". A submission that matches any rule is secured; its content and
artifacts are only visible to admins. A submission that has never been
reviewed is treated as secured (PENDING) until it is.

Classification is evaluated on every access check; nothing is cached.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session

from biohub.clients.storage import ObjectStore
from biohub.dwc.archive import CSVWorksheet, DWCArchive, WorksheetRole
from biohub.errors import ApiClientError, ApiForbiddenError, ApiGeneralError
from biohub.models.enums import (
    SecurityStatus,
    SubmissionMessageClass,
    SubmissionMessageType,
    SubmissionStatusType,
)
from biohub.pipeline.state_machine import ensure_transition_allowed, transition_submission
from biohub.repositories.artifact import get_artifact_by_id, list_artifacts_for_package
from biohub.repositories.reference import get_security_schema
from biohub.repositories.security import (
    list_submission_security_rules,
    replace_submission_security_rules,
)
from biohub.repositories.submission import (
    get_current_submission_by_uuid,
    get_submission_record_by_submission_id,
    update_submission_security_review_timestamp,
)
from biohub.schemas.artifact import ArtifactRead
from biohub.schemas.security import SecurityResult, SecuritySchemaDefinition, SecurityStatusRead
from biohub.schemas.submission import SubmissionMessageCreate, SubmissionRead
from biohub.services.submission_archive import get_submission_archive

logger = logging.getLogger(__name__)


def evaluate_security_rules(archive: DWCArchive, schema: SecuritySchemaDefinition) -> list[str]:
    """Names of the rules that match any row of the archive, in schema order."""
    matched = []
    for rule in schema.rules:
        try:
            role = WorksheetRole(rule.worksheet.strip().lower())
        except ValueError:
            continue
        worksheet = archive.worksheet(role)
        if worksheet is None:
            continue
        index = worksheet.get_header_index(rule.field)
        if index is None:
            continue
        wanted = {value.strip().casefold() for value in rule.values}
        for row in worksheet.get_rows():
            value = CSVWorksheet.get_cell(row, index)
            if value is not None and value.casefold() in wanted:
                matched.append(rule.name)
                break
    return matched


def _reject(db: Session, submission_id: int, message: str) -> SecurityResult:
    transition_submission(
        db,
        submission_id,
        SubmissionStatusType.REJECTED,
        [
            SubmissionMessageCreate(
                message_type=SubmissionMessageType.MISCELLANEOUS,
                message=message,
                message_class=SubmissionMessageClass.ERROR,
            )
        ],
    )
    return SecurityResult(secure=False, applied_rules=[], success=False, errors=[message])


def secure_submission(
    db: Session, submission_id: int, security_schema_id: int, storage: ObjectStore
) -> SecurityResult:
    """Classify a submission and record SECURED, or REJECTED when review cannot run.

    The applied rules replace whatever a previous review recorded.
    """
    ensure_transition_allowed(db, submission_id, SubmissionStatusType.SECURED)
    submission = get_submission_record_by_submission_id(db, submission_id)

    schema_row = get_security_schema(db, security_schema_id)
    if schema_row is None:
        logger.warning(
            "Security schema %s not found for submission %s", security_schema_id, submission_id
        )
        return _reject(db, submission_id, f"Security schema {security_schema_id} is not available")
    try:
        schema = SecuritySchemaDefinition.model_validate(schema_row.definition)
    except ValidationError as exc:
        logger.warning("Security schema %s is invalid: %s", security_schema_id, exc)
        return _reject(db, submission_id, f"Security schema {schema_row.name} is not valid")

    try:
        archive = get_submission_archive(submission, storage)
    except (ApiClientError, ApiGeneralError) as exc:
        logger.warning(
            "Submission %s archive unreadable for security review: %s", submission_id, exc.message
        )
        return _reject(
            db, submission_id, f"Submission could not be read for security review: {exc.message}"
        )

    applied = replace_submission_security_rules(
        db, submission_id, security_schema_id, evaluate_security_rules(archive, schema)
    )
    update_submission_security_review_timestamp(db, submission_id)
    transition_submission(db, submission_id, SubmissionStatusType.SECURED)
    logger.info("Submission %s security review: %d rule(s) applied", submission_id, len(applied))
    return SecurityResult(secure=bool(applied), applied_rules=applied, success=True)


def get_submission_security_status(db: Session, submission_id: int) -> SecurityStatusRead:
    submission = get_submission_record_by_submission_id(db, submission_id)
    applied = list_submission_security_rules(db, submission_id)
    if submission.security_review_timestamp is None:
        status = SecurityStatus.PENDING
    elif applied:
        status = SecurityStatus.SECURED
    else:
        status = SecurityStatus.UNSECURED
    return SecurityStatusRead(submission_id=submission_id, status=status, applied_rules=applied)


def can_access_submission(db: Session, submission_id: int, is_admin: bool) -> bool:
    """Admins always; everyone else only once reviewed with no rules applied."""
    if is_admin:
        return True
    return get_submission_security_status(db, submission_id).status == SecurityStatus.UNSECURED


def require_submission_access(db: Session, submission_id: int, is_admin: bool) -> None:
    if not can_access_submission(db, submission_id, is_admin):
        raise ApiForbiddenError("Submission is secured", [f"submission_id={submission_id}"])


def require_package_access(db: Session, submission_id: int, is_admin: bool) -> SubmissionRead:
    """Gate on the current version of ``submission_id``'s package.

    The current version's security review governs every artifact of the
    package, including files uploaded against earlier versions. Returns the
    version the gate was evaluated on.
    """
    submission = get_submission_record_by_submission_id(db, submission_id)
    current = get_current_submission_by_uuid(db, submission.uuid) or submission
    require_submission_access(db, current.id, is_admin)
    return current


def get_accessible_artifact(db: Session, artifact_id: int, is_admin: bool) -> ArtifactRead:
    """Artifact by id; raises ApiForbiddenError when its package is not visible."""
    artifact = get_artifact_by_id(db, artifact_id)
    require_package_access(db, artifact.submission_id, is_admin)
    return artifact


def list_accessible_artifacts(
    db: Session, submission_id: int, is_admin: bool
) -> list[ArtifactRead]:
    """All artifacts of the submission's package, whichever version they were uploaded with."""
    current = require_package_access(db, submission_id, is_admin)
    return list_artifacts_for_package(db, current.uuid)
