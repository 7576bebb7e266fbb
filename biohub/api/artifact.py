"""Artifact routes: attach supplementary files and hand out download links."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from biohub.api.deps import get_db, get_is_admin, get_scanner, get_storage, require_service_token
from biohub.api.submission import read_upload
from biohub.clients.storage import ObjectStore
from biohub.clients.virus_scan import VirusScanner
from biohub.config import get_settings
from biohub.db.session import transaction
from biohub.schemas.artifact import ArtifactRead, ArtifactSignedUrl
from biohub.services.artifact import get_artifact_signed_url, intake_artifact

router = APIRouter(dependencies=[Depends(require_service_token)])


@router.post("/artifact/intake", response_model=ArtifactRead)
def api_artifact_intake(
    media: UploadFile = File(...),
    data_package_id: UUID = Form(...),
    title: str | None = Form(None),
    description: str | None = Form(None),
    db: Session = Depends(get_db),
    storage: ObjectStore = Depends(get_storage),
    scanner: VirusScanner = Depends(get_scanner),
) -> ArtifactRead:
    """Attach a file to the current submission of ``data_package_id``."""
    upload = read_upload(media)
    with transaction(db):
        return intake_artifact(
            db,
            upload,
            data_package_id,
            storage,
            scanner,
            title=title,
            description=description,
        )


@router.get("/artifact/{artifact_id}/signed-url", response_model=ArtifactSignedUrl)
def api_artifact_signed_url(
    artifact_id: int,
    db: Session = Depends(get_db),
    storage: ObjectStore = Depends(get_storage),
    is_admin: bool = Depends(get_is_admin),
) -> ArtifactSignedUrl:
    return get_artifact_signed_url(
        db, artifact_id, is_admin, storage, get_settings().signed_url_expiry_seconds
    )
