"""Rebuild the DwC archive of a stored submission."""

from __future__ import annotations

from biohub.clients.storage import ObjectStore
from biohub.dwc.archive import DWCArchive
from biohub.errors import ApiClientError, ApiGeneralError
from biohub.media.parser import parse_unknown_media
from biohub.schemas.submission import SubmissionRead


def get_submission_archive(submission: SubmissionRead, storage: ObjectStore) -> DWCArchive:
    """Fetch the submission's object by ``input_key`` and parse it into a DWCArchive.

    Raises:
        ApiGeneralError: the record has no key or storage has no object for it.
        ApiClientError: the object is not a readable DwC archive.
    """
    if not submission.input_key:
        raise ApiGeneralError(
            "submission record s3Key unavailable", [f"submission_id={submission.id}"]
        )
    stored = storage.get_object(submission.input_key)
    if stored is None:
        raise ApiGeneralError("s3 file unavailable", [f"key={submission.input_key}"])
    media = parse_unknown_media(stored)
    if media is None:
        raise ApiClientError("Failed to parse submission", [f"submission_id={submission.id}"])
    return DWCArchive.from_media(media)
