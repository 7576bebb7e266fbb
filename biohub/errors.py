"""Error taxonomy for the submission pipeline.

Every error carries a stable ``name`` (the error kind), a human message and an
optional list of detail strings. SQL errors use the detail list as a breadcrumb
trail, e.g. ``["SubmissionRepository->insert_submission_record",
"rowCount was null or undefined, expected rowCount = 1"]``.

The FastAPI app maps each class to its ``status_code`` in one handler
(see ``biohub.main``).
"""

from __future__ import annotations


class ApiError(Exception):
    """Base error; never raised directly."""

    name = "ApiError"
    status_code = 500

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors: list[str] = list(errors or [])

    def to_dict(self) -> dict:
        return {"name": self.name, "message": self.message, "errors": self.errors}


class ApiClientError(ApiError):
    """The caller sent something unusable (bad archive, unknown record)."""

    name = "BadRequest"
    status_code = 400


class ApiForbiddenError(ApiError):
    name = "Forbidden"
    status_code = 403


class SubmissionStateError(ApiError):
    """A status transition was attempted that the state machine does not allow."""

    name = "Conflict"
    status_code = 409


class ApiGeneralError(ApiError):
    """An upstream collaborator or system resource failed."""

    name = "GeneralError"
    status_code = 500


class ApiExecuteSQLError(ApiError):
    """A statement that must affect a row affected none."""

    name = "ExecuteSQLError"
    status_code = 500
