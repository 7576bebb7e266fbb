"""Validate a DwC archive against a style schema.

:func:`validate_dwc_archive_with_style_schema` is pure: archive and schema in,
report out. :func:`validate_submission` wraps it with the database and storage
reads and records exactly one status for the whole pass.

Media checks run first. If the archive as a whole is unusable (missing
required files, missing or broken EML, disallowed file types) the CSV checks
are skipped, since their findings would only be noise.
"""

from __future__ import annotations

import logging
import re
from collections import Counter

from pydantic import ValidationError
from sqlalchemy.orm import Session

from biohub.clients.storage import ObjectStore
from biohub.dwc.archive import CSVWorksheet, DWCArchive, WorksheetRole
from biohub.errors import ApiClientError
from biohub.models.enums import SubmissionMessageClass, SubmissionMessageType, SubmissionStatusType
from biohub.pipeline.state_machine import ensure_transition_allowed, transition_submission
from biohub.repositories.reference import get_style_schema_by_style_id
from biohub.repositories.submission import get_submission_record_by_submission_id
from biohub.schemas.submission import SubmissionMessageCreate
from biohub.schemas.validation import (
    ColumnRule,
    CsvState,
    MediaState,
    StyleSchemaDefinition,
    ValidationIssue,
    ValidationResult,
    WorksheetRules,
)
from biohub.services.eml.transform import parse_eml
from biohub.services.submission_archive import get_submission_archive

logger = logging.getLogger(__name__)

MessageType = SubmissionMessageType


def _issue(
    message_type: SubmissionMessageType,
    message: str,
    file_name: str | None = None,
    row: int | None = None,
    col: str | None = None,
    severity: SubmissionMessageClass = SubmissionMessageClass.ERROR,
) -> ValidationIssue:
    return ValidationIssue(
        type=message_type, message=message, severity=severity, file_name=file_name, row=row, col=col
    )


def validate_media(archive: DWCArchive, schema: StyleSchemaDefinition) -> MediaState:
    errors: list[ValidationIssue] = []
    present = {role.value for role in archive.present_roles()}

    for required in schema.required_files:
        if required not in present:
            errors.append(_issue(MessageType.MISCELLANEOUS, f"Missing required file: {required}"))

    if archive.eml is None:
        if schema.require_eml:
            errors.append(_issue(MessageType.MISCELLANEOUS, "Missing required file: eml.xml"))
    else:
        try:
            parse_eml(archive.eml.data)
        except ApiClientError as exc:
            errors.append(
                _issue(
                    MessageType.UNEXPECTED_FORMAT,
                    f"EML is not well-formed XML: {'; '.join(exc.errors) or exc.message}",
                    file_name=archive.eml.name,
                )
            )

    members = [worksheet.media_file for worksheet in _present_worksheets(archive)]
    members += [media for media in (archive.eml, archive.meta) if media is not None]
    members += archive.unclassified
    if schema.allowed_mimetypes:
        allowed = set(schema.allowed_mimetypes)
        for media in members:
            if media.mimetype not in allowed:
                errors.append(
                    _issue(
                        MessageType.UNEXPECTED_FORMAT,
                        f"File type {media.mimetype} is not allowed",
                        file_name=media.name,
                    )
                )

    if not schema.allow_unknown_files:
        for media in archive.unclassified:
            errors.append(
                _issue(MessageType.MISCELLANEOUS, "Unknown file in archive", file_name=media.name)
            )

    return MediaState(file_name=archive.name, file_errors=errors, is_valid=not errors)


def _present_worksheets(archive: DWCArchive) -> list[CSVWorksheet]:
    return [archive.worksheet(role) for role in archive.present_roles()]


def _validate_headers(worksheet: CSVWorksheet, rules: WorksheetRules | None) -> list[ValidationIssue]:
    headers = worksheet.get_headers()
    file_name = worksheet.media_file.name
    if not headers:
        return [_issue(MessageType.MISSING_REQUIRED_HEADER, "Worksheet has no header row", file_name)]

    issues = [
        _issue(MessageType.DUPLICATE_HEADER, "Duplicate header", file_name, col=header)
        for header, count in Counter(headers).items()
        if count > 1
    ]
    if rules is None:
        return issues

    header_set = set(headers)
    for column in rules.required_columns:
        if column not in header_set:
            issues.append(
                _issue(
                    MessageType.MISSING_REQUIRED_HEADER,
                    "Missing required header",
                    file_name,
                    col=column,
                )
            )
    for column in rules.recommended_columns:
        if column not in header_set:
            issues.append(
                _issue(
                    MessageType.MISSING_RECOMMENDED_HEADER,
                    "Missing recommended header",
                    file_name,
                    col=column,
                    severity=SubmissionMessageClass.WARNING,
                )
            )
    if not rules.allow_unknown_columns:
        known = rules.known_columns()
        for header in headers:
            if header not in known:
                issues.append(_issue(MessageType.UNKNOWN_HEADER, "Unknown header", file_name, col=header))
    return issues


def _reference_values(archive: DWCArchive, reference: str) -> set[str] | None:
    worksheet_name, _, column = reference.partition(".")
    worksheet = archive.worksheet(WorksheetRole(worksheet_name))
    if worksheet is None:
        return None
    index = worksheet.get_header_index(column)
    if index is None:
        return None
    return {
        value
        for value in (CSVWorksheet.get_cell(row, index) for row in worksheet.get_rows())
        if value is not None
    }


def _check_value(
    value: str,
    rule: ColumnRule,
    pattern: re.Pattern | None,
) -> tuple[SubmissionMessageType, str] | None:
    if pattern is not None and not pattern.search(value):
        return MessageType.UNEXPECTED_FORMAT, f"Value {value!r} does not match the expected format"
    if rule.numeric or rule.minimum is not None or rule.maximum is not None:
        try:
            number = float(value)
        except ValueError:
            return MessageType.UNEXPECTED_FORMAT, f"Value {value!r} is not a number"
        if rule.minimum is not None and number < rule.minimum:
            return MessageType.OUT_OF_RANGE, f"Value {value} is below the minimum {rule.minimum:g}"
        if rule.maximum is not None and number > rule.maximum:
            return MessageType.OUT_OF_RANGE, f"Value {value} is above the maximum {rule.maximum:g}"
    if rule.allowed_values is not None:
        if rule.case_sensitive:
            allowed = set(rule.allowed_values)
            candidate = value
        else:
            allowed = {v.casefold() for v in rule.allowed_values}
            candidate = value.casefold()
        if candidate not in allowed:
            return MessageType.INVALID_VALUE, f"Value {value!r} is not one of the allowed values"
    return None


def _validate_rows(
    archive: DWCArchive, worksheet: CSVWorksheet, rules: WorksheetRules
) -> tuple[list[ValidationIssue], list[ValidationIssue]]:
    """Return (header-level issues, row-level issues) for the column rules."""
    header_issues: list[ValidationIssue] = []
    row_issues: list[ValidationIssue] = []
    file_name = worksheet.media_file.name
    rows = worksheet.get_rows()

    for column, rule in rules.columns.items():
        index = worksheet.get_header_index(column)
        if index is None:
            # Missing header is reported by the header pass when it matters
            continue
        pattern = re.compile(rule.pattern) if rule.pattern else None
        references = None
        if rule.references:
            references = _reference_values(archive, rule.references)
            if references is None:
                header_issues.append(
                    _issue(
                        MessageType.DANGLING_REFERENCE,
                        f"Referenced column {rule.references} is not present",
                        file_name,
                        col=column,
                    )
                )
        seen: set[str] = set()

        for row_number, row in enumerate(rows, start=1):
            value = CSVWorksheet.get_cell(row, index)
            if value is None:
                if rule.required:
                    row_issues.append(
                        _issue(
                            MessageType.MISSING_REQUIRED_FIELD,
                            "Missing required value",
                            file_name,
                            row_number,
                            column,
                        )
                    )
                continue
            problem = _check_value(value, rule, pattern)
            if problem is not None:
                row_issues.append(_issue(problem[0], problem[1], file_name, row_number, column))
            if rule.unique:
                if value in seen:
                    row_issues.append(
                        _issue(
                            MessageType.INVALID_VALUE,
                            f"Duplicate value {value!r}",
                            file_name,
                            row_number,
                            column,
                        )
                    )
                seen.add(value)
            if references is not None and value not in references:
                row_issues.append(
                    _issue(
                        MessageType.DANGLING_REFERENCE,
                        f"Value {value!r} has no match in {rule.references}",
                        file_name,
                        row_number,
                        column,
                    )
                )
    return header_issues, row_issues


def validate_worksheet(
    archive: DWCArchive, worksheet: CSVWorksheet, rules: WorksheetRules | None
) -> CsvState:
    header_errors = _validate_headers(worksheet, rules)
    row_errors: list[ValidationIssue] = []
    if rules is not None and worksheet.get_headers():
        reference_errors, row_errors = _validate_rows(archive, worksheet, rules)
        header_errors.extend(reference_errors)
    is_valid = not any(
        issue.severity == SubmissionMessageClass.ERROR for issue in header_errors + row_errors
    )
    return CsvState(
        file_name=worksheet.media_file.name,
        header_errors=header_errors,
        row_errors=row_errors,
        is_valid=is_valid,
    )


def validate_dwc_archive_with_style_schema(
    archive: DWCArchive, schema: StyleSchemaDefinition
) -> ValidationResult:
    """Run media then CSV validation; ``validation`` is True only with no ERROR issues."""
    media_state = validate_media(archive, schema)
    if not media_state.is_valid:
        return ValidationResult(validation=False, media_state=media_state, csv_state=[])

    csv_state = [
        validate_worksheet(archive, worksheet, schema.worksheets.get(worksheet.name))
        for worksheet in _present_worksheets(archive)
    ]
    return ValidationResult(
        validation=all(state.is_valid for state in csv_state),
        media_state=media_state,
        csv_state=csv_state,
    )


def _to_message(issue: ValidationIssue) -> SubmissionMessageCreate:
    return SubmissionMessageCreate(
        message_type=issue.type, message=issue.describe(), message_class=issue.severity
    )


def validate_submission(
    db: Session, submission_id: int, style_id: int, storage: ObjectStore
) -> ValidationResult:
    """Validate a stored submission and record DARWIN_CORE_VALIDATED or REJECTED.

    A missing style schema row propagates as ApiExecuteSQLError. A stored
    definition that does not parse rejects the submission with a
    MISSING_VALIDATION_SCHEMA message.
    """
    ensure_transition_allowed(db, submission_id, SubmissionStatusType.DARWIN_CORE_VALIDATED)
    submission = get_submission_record_by_submission_id(db, submission_id)
    style = get_style_schema_by_style_id(db, style_id)
    archive = get_submission_archive(submission, storage)

    try:
        schema = StyleSchemaDefinition.model_validate(style.definition)
    except ValidationError as exc:
        logger.warning("Style schema %s is invalid: %s", style_id, exc)
        issue = _issue(
            MessageType.MISSING_VALIDATION_SCHEMA,
            f"Style schema {style.name} {style.version} is not a valid validation schema",
        )
        result = ValidationResult(
            validation=False,
            media_state=MediaState(file_name=archive.name, file_errors=[issue], is_valid=False),
        )
        transition_submission(db, submission_id, SubmissionStatusType.REJECTED, [_to_message(issue)])
        return result

    result = validate_dwc_archive_with_style_schema(archive, schema)
    if result.validation:
        transition_submission(
            db,
            submission_id,
            SubmissionStatusType.DARWIN_CORE_VALIDATED,
            [_to_message(issue) for issue in result.warnings()],
        )
    else:
        transition_submission(
            db,
            submission_id,
            SubmissionStatusType.REJECTED,
            [_to_message(issue) for issue in result.errors()],
        )
    logger.info(
        "Validated submission %s against style %s: valid=%s errors=%d",
        submission_id,
        style_id,
        result.validation,
        len(result.errors()),
    )
    return result
