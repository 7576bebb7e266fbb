"""
Validation engine tests: media checks, header and row rules, and the recorded status.
"""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from biohub.errors import ApiExecuteSQLError
from biohub.models.enums import SubmissionMessageClass, SubmissionMessageType, SubmissionStatusType
from biohub.repositories.reference import insert_style_schema
from biohub.repositories.submission import get_current_submission_status, list_submission_messages
from biohub.schemas.validation import StyleSchemaDefinition
from biohub.services.validation.engine import (
    validate_dwc_archive_with_style_schema,
    validate_submission,
)
from biohub.services.validation.loader import load_default_style_schema
from tests.dwca_builder import build_archive, with_members


@pytest.fixture
def schema() -> StyleSchemaDefinition:
    return StyleSchemaDefinition.model_validate(load_default_style_schema())


def _types(result) -> list[SubmissionMessageType]:
    return [issue.type for issue in result.errors()]


def test_valid_archive_passes(schema) -> None:
    result = validate_dwc_archive_with_style_schema(build_archive(), schema)
    assert result.validation is True
    assert result.errors() == []
    assert result.warnings() == []
    assert [state.file_name for state in result.csv_state] == [
        "event.txt",
        "occurrence.txt",
        "taxon.txt",
    ]


def test_missing_required_file_skips_csv_checks(schema) -> None:
    result = validate_dwc_archive_with_style_schema(build_archive(with_members(taxon_txt=None)), schema)
    assert result.validation is False
    assert result.csv_state == []
    assert [issue.message for issue in result.media_state.file_errors] == [
        "Missing required file: taxon"
    ]


def test_missing_eml(schema) -> None:
    result = validate_dwc_archive_with_style_schema(build_archive(with_members(eml_xml=None)), schema)
    assert result.validation is False
    assert "Missing required file: eml.xml" in [i.message for i in result.media_state.file_errors]


def test_malformed_eml(schema) -> None:
    result = validate_dwc_archive_with_style_schema(
        build_archive(with_members(eml_xml="<eml><dataset>")), schema
    )
    assert result.validation is False
    [issue] = result.media_state.file_errors
    assert issue.type == SubmissionMessageType.UNEXPECTED_FORMAT
    assert issue.file_name == "eml.xml"


def test_disallowed_file_type(schema) -> None:
    members = with_members()
    members["photo.jpg"] = b"\xff\xd8\xff"
    result = validate_dwc_archive_with_style_schema(build_archive(members), schema)
    assert result.validation is False
    [issue] = result.media_state.file_errors
    assert issue.file_name == "photo.jpg"
    assert issue.message == "File type image/jpeg is not allowed"


def test_unknown_files_rejected_when_not_allowed(schema) -> None:
    strict = schema.model_copy(update={"allow_unknown_files": False})
    members = with_members()
    members["notes.txt"] = "free text"
    result = validate_dwc_archive_with_style_schema(build_archive(members), strict)
    assert [i.message for i in result.media_state.file_errors] == ["Unknown file in archive"]


def test_missing_required_header(schema) -> None:
    archive = build_archive(with_members(event_txt="id,verbatimCoordinates\nev-1,\nev-2,\n"))
    result = validate_dwc_archive_with_style_schema(archive, schema)
    assert result.validation is False
    event_state = result.csv_state[0]
    assert [(i.type, i.col) for i in event_state.header_errors] == [
        (SubmissionMessageType.MISSING_REQUIRED_HEADER, "eventDate")
    ]


def test_missing_recommended_header_is_only_a_warning(schema) -> None:
    archive = build_archive(with_members(taxon_txt="id\nev-1\nev-2\n"))
    result = validate_dwc_archive_with_style_schema(archive, schema)
    assert result.validation is True
    [warning] = result.warnings()
    assert warning.type == SubmissionMessageType.MISSING_RECOMMENDED_HEADER
    assert warning.severity == SubmissionMessageClass.WARNING
    assert warning.col == "vernacularName"


def test_duplicate_header(schema) -> None:
    archive = build_archive(with_members(taxon_txt="id,vernacularName,id\nev-1,moose,ev-1\n"))
    result = validate_dwc_archive_with_style_schema(archive, schema)
    assert SubmissionMessageType.DUPLICATE_HEADER in _types(result)


def test_unknown_header_when_columns_are_strict(schema) -> None:
    definition = load_default_style_schema()
    definition = {
        **definition,
        "worksheets": {
            **definition["worksheets"],
            "taxon": {**definition["worksheets"]["taxon"], "allow_unknown_columns": False},
        },
    }
    strict = StyleSchemaDefinition.model_validate(definition)
    archive = build_archive(with_members(taxon_txt="id,vernacularName,colour\nev-1,moose,brown\n"))
    result = validate_dwc_archive_with_style_schema(archive, strict)
    assert [(i.type, i.col) for i in result.errors()] == [
        (SubmissionMessageType.UNKNOWN_HEADER, "colour")
    ]


def test_row_rules(schema) -> None:
    archive = build_archive(
        with_members(
            event_txt="id,eventDate,verbatimCoordinates\nev-1,2024-05-01,\nev-1,May 2nd,\n",
            occurrence_txt=(
                "id,associatedTaxa,sex,lifeStage,individualCount\n"
                "ev-1,M-ALAM,robot,adult,-1\n"
                "ev-9,,male,adult,abc\n"
            ),
        )
    )
    result = validate_dwc_archive_with_style_schema(archive, schema)
    assert result.validation is False
    found = {(i.file_name, i.row, i.col, i.type) for i in result.errors()}
    T = SubmissionMessageType
    assert found == {
        ("event.txt", 2, "id", T.INVALID_VALUE),
        ("event.txt", 2, "eventDate", T.UNEXPECTED_FORMAT),
        ("occurrence.txt", 1, "sex", T.INVALID_VALUE),
        ("occurrence.txt", 1, "individualCount", T.OUT_OF_RANGE),
        ("occurrence.txt", 2, "id", T.DANGLING_REFERENCE),
        ("occurrence.txt", 2, "associatedTaxa", T.MISSING_REQUIRED_FIELD),
        ("occurrence.txt", 2, "individualCount", T.UNEXPECTED_FORMAT),
    }


def test_allowed_values_are_case_insensitive_by_default(schema) -> None:
    archive = build_archive(
        with_members(
            occurrence_txt="id,associatedTaxa,sex,lifeStage\nev-1,M-ALAM,MALE,Adult\n"
        )
    )
    assert validate_dwc_archive_with_style_schema(archive, schema).validation is True


def test_issue_describe_includes_location(schema) -> None:
    archive = build_archive(with_members(occurrence_txt="id,associatedTaxa,sex\nev-1,M-ALAM,robot\n"))
    [issue] = validate_dwc_archive_with_style_schema(archive, schema).errors()
    assert issue.describe() == "occurrence.txt, row 1, sex: Value 'robot' is not one of the allowed values"


def test_validate_submission_records_validated(db: Session, make_submission, reference_data, storage) -> None:
    submission_id = make_submission().submission_id
    result = validate_submission(db, submission_id, reference_data.style_id, storage)
    assert result.validation is True
    current = get_current_submission_status(db, submission_id)
    assert current.status_type == SubmissionStatusType.DARWIN_CORE_VALIDATED


def test_validate_submission_attaches_warnings_to_validated_status(
    db: Session, make_submission, reference_data, storage
) -> None:
    submission_id = make_submission(with_members(taxon_txt="id\nev-1\nev-2\n")).submission_id
    validate_submission(db, submission_id, reference_data.style_id, storage)
    current = get_current_submission_status(db, submission_id)
    assert current.status_type == SubmissionStatusType.DARWIN_CORE_VALIDATED
    [message] = list_submission_messages(db, submission_id)
    assert message.submission_status_id == current.id
    assert message.message_class == SubmissionMessageClass.WARNING


def test_validate_submission_records_rejected_with_messages(
    db: Session, make_submission, reference_data, storage
) -> None:
    submission_id = make_submission(with_members(taxon_txt=None)).submission_id
    validate_submission(db, submission_id, reference_data.style_id, storage)
    current = get_current_submission_status(db, submission_id)
    assert current.status_type == SubmissionStatusType.REJECTED
    [message] = list_submission_messages(db, submission_id)
    assert message.message == "Missing required file: taxon"
    assert message.message_type == SubmissionMessageType.MISCELLANEOUS


def test_invalid_stored_schema_rejects_submission(
    db: Session, make_submission, storage
) -> None:
    submission_id = make_submission().submission_id
    broken_id = insert_style_schema(db, "Broken", "1", {"name": "Broken", "worksheets": {"plants": {}}})
    result = validate_submission(db, submission_id, broken_id, storage)
    assert result.validation is False
    [message] = list_submission_messages(db, submission_id)
    assert message.message_type == SubmissionMessageType.MISSING_VALIDATION_SCHEMA
    assert get_current_submission_status(db, submission_id).status_type == SubmissionStatusType.REJECTED


def test_missing_style_schema_raises(db: Session, make_submission, storage) -> None:
    submission_id = make_submission().submission_id
    with pytest.raises(ApiExecuteSQLError):
        validate_submission(db, submission_id, 999, storage)
