"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from tests.test_constants import TEST_SERVICE_TOKEN, TEST_SOURCE

# In-memory backends for every test run; don't inherit from .env
os.environ["DATABASE_URL"] = "sqlite+pysqlite://"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["SEARCH_BACKEND"] = "memory"
os.environ["SERVICE_TOKEN"] = TEST_SERVICE_TOKEN
os.environ["S3_KEY_PREFIX"] = "biohub"


@dataclass
class ReferenceData:
    style_id: int
    security_schema_id: int
    source_transform_id: int
    stylesheet_key: str
    source: str = TEST_SOURCE


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    from biohub.main import app

    return TestClient(app)


@pytest.fixture
def db() -> Session:
    """Session on a fresh in-memory database with every table created."""
    import biohub.models  # noqa: F401
    from biohub.db.session import Base, build_engine

    engine = build_engine("sqlite+pysqlite://")
    Base.metadata.create_all(engine)
    session = Session(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def session_factory(db: Session):
    """Factory for extra sessions on the same database as ``db``."""
    return sessionmaker(bind=db.get_bind(), autoflush=False, expire_on_commit=False)


@pytest.fixture
def storage():
    from biohub.clients.storage import InMemoryObjectStore

    return InMemoryObjectStore()


@pytest.fixture
def search_index():
    from biohub.clients.search import InMemorySearchIndex

    return InMemorySearchIndex()


@pytest.fixture
def pipeline_context(storage, search_index, reference_data):
    from biohub.pipeline.stages import PipelineContext

    return PipelineContext(
        storage=storage,
        search_index=search_index,
        style_id=reference_data.style_id,
        security_schema_id=reference_data.security_schema_id,
        index_name="eml",
    )


@pytest.fixture
def reference_data(db: Session, storage) -> ReferenceData:
    """Default style schema, a security schema and the source stylesheet, committed."""
    from biohub.repositories.reference import (
        get_source_transform,
        insert_security_schema,
        insert_style_schema,
    )
    from biohub.services.eml.transform import load_default_stylesheet, register_stylesheet
    from biohub.services.validation.loader import load_default_style_schema

    style = load_default_style_schema()
    style_id = insert_style_schema(db, style["name"], style["version"], style)
    security_schema_id = insert_security_schema(
        db,
        "Test security",
        {
            "name": "Test security",
            "rules": [
                {
                    "name": "Sensitive species",
                    "worksheet": "occurrence",
                    "field": "associatedTaxa",
                    "values": ["M-ORAM"],
                }
            ],
        },
    )
    transform_id = register_stylesheet(db, storage, TEST_SOURCE, load_default_stylesheet())
    stylesheet_key = get_source_transform(db, TEST_SOURCE).stylesheet_key
    db.commit()
    return ReferenceData(
        style_id=style_id,
        security_schema_id=security_schema_id,
        source_transform_id=transform_id,
        stylesheet_key=stylesheet_key,
    )


@pytest.fixture
def client_with_db(db: Session, session_factory, storage, search_index) -> TestClient:
    """TestClient wired to the test db session and in-memory storage and search."""
    from biohub.api.deps import get_db, get_search, get_session_factory, get_storage
    from biohub.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_search] = lambda: search_index
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    c = TestClient(app)
    yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"X-Service-Token": TEST_SERVICE_TOKEN}


@pytest.fixture(autouse=True)
def _clear_cached_loaders() -> None:
    """Clear lru_caches on settings, clients and shipped reference data around each test."""
    from biohub.clients.search import get_search_index
    from biohub.clients.storage import get_object_store
    from biohub.config import get_settings
    from biohub.services.eml.transform import load_default_stylesheet
    from biohub.services.validation.loader import load_default_style_schema

    caches = (
        get_settings,
        get_object_store,
        get_search_index,
        load_default_stylesheet,
        load_default_style_schema,
    )
    for cached in caches:
        cached.cache_clear()
    yield
    for cached in caches:
        cached.cache_clear()


@pytest.fixture
def make_submission(db: Session, storage, reference_data):
    """Factory: run intake for an archive and commit; returns the IntakeResponse."""
    from uuid import uuid4

    from biohub.clients.virus_scan import PassthroughScanner
    from biohub.media.parser import UploadedFile
    from biohub.services.intake import intake
    from tests.dwca_builder import build_zip

    def _make(members=None, package_id=None, file_name: str = "dwca.zip"):
        upload = UploadedFile(
            filename=file_name, data=build_zip(members), content_type="application/zip"
        )
        response = intake(
            db, upload, package_id or uuid4(), reference_data.source, storage, PassthroughScanner()
        )
        db.commit()
        return response

    return _make


@pytest.fixture
def advance_submission(db: Session, make_submission, reference_data, storage):
    """Factory: intake an archive and run the pipeline steps up to ``until``."""
    from biohub.services.ingest import ingest_submission
    from biohub.services.security import secure_submission
    from biohub.services.validation.engine import validate_submission

    steps = {
        "validate": lambda sid: validate_submission(db, sid, reference_data.style_id, storage),
        "secure": lambda sid: secure_submission(db, sid, reference_data.security_schema_id, storage),
        "ingest": lambda sid: ingest_submission(db, sid, storage),
    }

    def _advance(members=None, until: str = "ingest", package_id=None) -> int:
        submission_id = make_submission(members, package_id=package_id).submission_id
        for name, step in steps.items():
            step(submission_id)
            db.commit()
            if name == until:
                break
        return submission_id

    return _advance
