"""SQLAlchemy models."""

from biohub.models.artifact import Artifact
from biohub.models.occurrence import Occurrence
from biohub.models.reference import SecuritySchema, SourceTransform, StyleSchema
from biohub.models.security import SubmissionSecurityRule
from biohub.models.submission import Submission
from biohub.models.submission_status import SubmissionMessage, SubmissionStatus

__all__ = [
    "Artifact",
    "Occurrence",
    "SecuritySchema",
    "SourceTransform",
    "StyleSchema",
    "Submission",
    "SubmissionMessage",
    "SubmissionSecurityRule",
    "SubmissionStatus",
]
