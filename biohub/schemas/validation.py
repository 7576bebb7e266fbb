"""Validation DTOs: style schema definition and the validation report."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from biohub.models.enums import SubmissionMessageClass, SubmissionMessageType

WORKSHEET_NAMES = (
    "event",
    "location",
    "measurementorfact",
    "occurrence",
    "resourcerelationship",
    "taxon",
)


class ColumnRule(BaseModel):
    """Per-column value rules. All are optional and combine."""

    model_config = ConfigDict(extra="forbid")

    required: bool = False
    pattern: str | None = None
    allowed_values: list[str] | None = None
    case_sensitive: bool = False
    numeric: bool = False
    minimum: float | None = None
    maximum: float | None = None
    unique: bool = False
    references: str | None = Field(
        None, description="'<worksheet>.<column>' the value must exist in"
    )

    @field_validator("pattern")
    @classmethod
    def _check_pattern(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"pattern {value!r} is not a valid regular expression: {exc}") from exc
        return value

    @field_validator("references")
    @classmethod
    def _check_reference(cls, value: str | None) -> str | None:
        if value is None:
            return value
        worksheet, _, column = value.partition(".")
        if worksheet not in WORKSHEET_NAMES or not column:
            raise ValueError(f"references must be '<worksheet>.<column>', got {value!r}")
        return value


class WorksheetRules(BaseModel):
    model_config = ConfigDict(extra="forbid")

    required_columns: list[str] = Field(default_factory=list)
    recommended_columns: list[str] = Field(default_factory=list)
    optional_columns: list[str] = Field(default_factory=list)
    allow_unknown_columns: bool = True
    columns: dict[str, ColumnRule] = Field(default_factory=dict)

    def known_columns(self) -> set[str]:
        return (
            set(self.required_columns)
            | set(self.recommended_columns)
            | set(self.optional_columns)
            | set(self.columns)
        )


class StyleSchemaDefinition(BaseModel):
    """Validation rules for a DwC archive, as stored in style_schema.definition."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    version: str = Field("1.0", min_length=1)
    required_files: list[str] = Field(default_factory=list)
    require_eml: bool = True
    allow_unknown_files: bool = True
    allowed_mimetypes: list[str] = Field(default_factory=list)
    worksheets: dict[str, WorksheetRules] = Field(default_factory=dict)

    @field_validator("required_files")
    @classmethod
    def _check_required_files(cls, value: list[str]) -> list[str]:
        unknown = [name for name in value if name not in WORKSHEET_NAMES]
        if unknown:
            raise ValueError(f"Unknown worksheet names in required_files: {unknown}")
        return value

    @field_validator("worksheets")
    @classmethod
    def _check_worksheets(cls, value: dict[str, WorksheetRules]) -> dict[str, WorksheetRules]:
        unknown = [name for name in value if name not in WORKSHEET_NAMES]
        if unknown:
            raise ValueError(f"Unknown worksheet names in worksheets: {unknown}")
        return value


class ValidationIssue(BaseModel):
    """One finding. ``row`` is the 1-based data row, ``col`` the header name."""

    model_config = ConfigDict(extra="forbid")

    type: SubmissionMessageType
    message: str
    severity: SubmissionMessageClass = SubmissionMessageClass.ERROR
    file_name: str | None = None
    row: int | None = None
    col: str | None = None

    def describe(self) -> str:
        """Message text with its location, for submission_message rows."""
        parts = (self.file_name, f"row {self.row}" if self.row else None, self.col)
        location = ", ".join(part for part in parts if part)
        return f"{location}: {self.message}" if location else self.message


class MediaState(BaseModel):
    model_config = ConfigDict(extra="forbid")

    file_name: str
    file_errors: list[ValidationIssue] = Field(default_factory=list)
    is_valid: bool = True


class CsvState(BaseModel):
    model_config = ConfigDict(extra="forbid")

    file_name: str
    header_errors: list[ValidationIssue] = Field(default_factory=list)
    row_errors: list[ValidationIssue] = Field(default_factory=list)
    is_valid: bool = True


class ValidationResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    validation: bool
    media_state: MediaState
    csv_state: list[CsvState] = Field(default_factory=list)

    def issues(self) -> list[ValidationIssue]:
        """Every issue, media first then per worksheet."""
        issues = list(self.media_state.file_errors)
        for state in self.csv_state:
            issues.extend(state.header_errors)
            issues.extend(state.row_errors)
        return issues

    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues() if issue.severity == SubmissionMessageClass.ERROR]

    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues() if issue.severity == SubmissionMessageClass.WARNING]
