"""Shared FastAPI dependencies for API routes.

Every /api/dwc route is called by trusted BioHub services, never by browsers.
Callers authenticate with a static service token (X-Service-Token). The
upstream gateway resolves the end user and forwards their admin flag in
X-Is-Admin.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from biohub.clients.search import SearchIndex, get_search_index
from biohub.clients.storage import ObjectStore, get_object_store
from biohub.clients.virus_scan import VirusScanner, get_virus_scanner
from biohub.config import get_settings
from biohub.constants import ServiceConstants, load_service_constants
from biohub.db.session import SessionLocal, get_db  # re-export
from biohub.pipeline.stages import PipelineContext

__all__ = [
    "get_db",
    "get_is_admin",
    "get_pipeline_context",
    "get_scanner",
    "get_search",
    "get_service_constants",
    "get_session_factory",
    "get_storage",
    "require_service_token",
]

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes"}


def require_service_token(x_service_token: str = Header(...)) -> None:
    """Validate the service token from the request header.

    Uses constant-time comparison. Raises 403 if the token is empty or does
    not match the configured value.
    """
    expected = get_settings().service_token
    if not expected or not secrets.compare_digest(x_service_token, expected):
        logger.warning("Service endpoint auth failed: invalid or missing token")
        raise HTTPException(status_code=403, detail="Invalid service token")


def get_is_admin(x_is_admin: str | None = Header(None)) -> bool:
    return (x_is_admin or "").strip().lower() in _TRUE_VALUES


def get_storage() -> ObjectStore:
    return get_object_store()


def get_search() -> SearchIndex:
    return get_search_index()


def get_scanner() -> VirusScanner:
    return get_virus_scanner()


def get_session_factory() -> Callable[[], Session]:
    """Session factory for work that outlives the request (background tasks)."""
    return SessionLocal


def get_service_constants(db: Session = Depends(get_db)) -> ServiceConstants:
    return load_service_constants(db)


def get_pipeline_context(
    storage: ObjectStore = Depends(get_storage),
    search_index: SearchIndex = Depends(get_search),
) -> PipelineContext:
    settings = get_settings()
    return PipelineContext(
        storage=storage,
        search_index=search_index,
        style_id=settings.default_style_schema_id,
        security_schema_id=settings.default_security_schema_id,
        index_name=settings.elasticsearch_index,
    )
