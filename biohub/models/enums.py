"""Submission status, message type and message class vocabularies."""

from __future__ import annotations

from enum import Enum


class SubmissionStatusType(str, Enum):
    SUBMITTED = "Submitted"
    DARWIN_CORE_VALIDATED = "Darwin Core Validated"
    SECURED = "Secured"
    SUBMISSION_DATA_INGESTED = "Submission Data Ingested"
    PUBLISHED = "Published"
    REJECTED = "Rejected"
    SYSTEM_ERROR = "System Error"


class SubmissionMessageType(str, Enum):
    DUPLICATE_HEADER = "Duplicate Header"
    UNKNOWN_HEADER = "Unknown Header"
    MISSING_REQUIRED_HEADER = "Missing Required Header"
    MISSING_RECOMMENDED_HEADER = "Missing Recommended Header"
    MISSING_REQUIRED_FIELD = "Missing Required Field"
    UNEXPECTED_FORMAT = "Unexpected Format"
    OUT_OF_RANGE = "Out of Range"
    INVALID_VALUE = "Invalid Value"
    MISSING_VALIDATION_SCHEMA = "Missing Validation Schema"
    DANGLING_REFERENCE = "Dangling Reference"
    MISCELLANEOUS = "Miscellaneous"
    NOTICE = "Notice"


class SubmissionMessageClass(str, Enum):
    NOTICE = "Notice"
    WARNING = "Warning"
    ERROR = "Error"


class SecurityStatus(str, Enum):
    """Per-request security classification of a submission."""

    PENDING = "PENDING"
    SECURED = "SECURED"
    UNSECURED = "UNSECURED"
