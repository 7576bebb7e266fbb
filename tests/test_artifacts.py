"""
Artifact intake and signed download URLs.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from biohub.clients.virus_scan import PassthroughScanner
from biohub.errors import ApiClientError, ApiForbiddenError
from biohub.media.parser import UploadedFile
from biohub.repositories.artifact import list_artifacts_for_package
from biohub.services.artifact import get_artifact_signed_url, intake_artifact
from biohub.services.security import get_accessible_artifact, list_accessible_artifacts
from tests.dwca_builder import OCCURRENCE_CSV, with_members

PREFIX = "/api/dwc/artifact"

REPORT = UploadedFile(filename="reports/survey.pdf", data=b"%PDF-1.4 report", content_type="application/pdf")


def test_intake_artifact_stores_file(db: Session, make_submission, storage) -> None:
    package_id = uuid4()
    submission_id = make_submission(package_id=package_id).submission_id

    artifact = intake_artifact(
        db, REPORT, package_id, storage, PassthroughScanner(), title="Survey report"
    )

    assert artifact.submission_id == submission_id
    assert artifact.file_name == "survey.pdf"
    assert artifact.file_type == "application/pdf"
    assert artifact.file_size == len(REPORT.data)
    assert artifact.title == "Survey report"
    assert artifact.key == f"biohub/datasets/{package_id}/artifacts/{artifact.id}/survey.pdf"
    assert storage.get_object(artifact.key).body == REPORT.data
    assert [a.id for a in list_artifacts_for_package(db, package_id)] == [artifact.id]


def test_intake_artifact_requires_current_submission(db: Session, storage, reference_data) -> None:
    with pytest.raises(ApiClientError) as exc_info:
        intake_artifact(db, REPORT, uuid4(), storage, PassthroughScanner())
    assert exc_info.value.message == "No current submission for package"
    assert list(storage.objects) == [reference_data.stylesheet_key]


def test_intake_artifact_requires_data(db: Session, make_submission, storage) -> None:
    package_id = uuid4()
    make_submission(package_id=package_id)
    empty = UploadedFile(filename="empty.pdf", data=b"", content_type="application/pdf")
    with pytest.raises(ApiClientError, match="Missing required `media`"):
        intake_artifact(db, empty, package_id, storage, PassthroughScanner())


def test_signed_url_for_unsecured_submission(
    db: Session, advance_submission, storage
) -> None:
    package_id = uuid4()
    advance_submission(until="secure", package_id=package_id)
    artifact = intake_artifact(db, REPORT, package_id, storage, PassthroughScanner())

    signed = get_artifact_signed_url(db, artifact.id, False, storage, 60)
    assert signed.url == f"memory://{artifact.key}?expires_in=60"
    assert signed.expires_in == 60


def test_artifacts_follow_the_current_version(db: Session, advance_submission, storage) -> None:
    package_id = uuid4()
    first = advance_submission(until="secure", package_id=package_id)
    artifact = intake_artifact(db, REPORT, package_id, storage, PassthroughScanner())
    assert get_accessible_artifact(db, artifact.id, is_admin=False).id == artifact.id

    sensitive = with_members(occurrence_txt=OCCURRENCE_CSV + "ev-2,M-ORAM,adult,female,1,,\n")
    second = advance_submission(sensitive, until="secure", package_id=package_id)

    assert artifact.submission_id == first
    assert [a.id for a in list_accessible_artifacts(db, second, is_admin=True)] == [artifact.id]
    assert [a.id for a in list_accessible_artifacts(db, first, is_admin=True)] == [artifact.id]
    with pytest.raises(ApiForbiddenError):
        get_accessible_artifact(db, artifact.id, is_admin=False)
    with pytest.raises(ApiForbiddenError):
        list_accessible_artifacts(db, first, is_admin=False)


def test_artifact_api(client_with_db: TestClient, auth_headers, advance_submission, db: Session) -> None:
    package_id = uuid4()
    sensitive = with_members(occurrence_txt=OCCURRENCE_CSV + "ev-2,M-ORAM,adult,female,1,,\n")
    submission_id = advance_submission(sensitive, until="secure", package_id=package_id)

    created = client_with_db.post(
        f"{PREFIX}/intake",
        headers=auth_headers,
        data={"data_package_id": str(package_id), "title": "Survey report"},
        files={"media": ("survey.pdf", REPORT.data, "application/pdf")},
    )
    assert created.status_code == 200
    artifact_id = created.json()["id"]

    denied = client_with_db.get(f"{PREFIX}/{artifact_id}/signed-url", headers=auth_headers)
    assert denied.status_code == 403
    assert denied.json()["message"] == "Submission is secured"

    admin_headers = {**auth_headers, "X-Is-Admin": "true"}
    allowed = client_with_db.get(f"{PREFIX}/{artifact_id}/signed-url", headers=admin_headers)
    assert allowed.status_code == 200
    assert allowed.json()["expires_in"] == 300
    assert allowed.json()["url"].startswith("memory://biohub/datasets/")

    listed = client_with_db.get(
        f"/api/dwc/submission/{submission_id}/artifacts", headers=admin_headers
    )
    assert [a["id"] for a in listed.json()] == [artifact_id]
    hidden = client_with_db.get(f"/api/dwc/submission/{submission_id}/artifacts", headers=auth_headers)
    assert hidden.status_code == 403
