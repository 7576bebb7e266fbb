"""
Configuration tests.
"""

import pytest

from biohub.config import Settings, get_settings
from tests.test_constants import TEST_SERVICE_TOKEN


def test_get_settings_returns_settings() -> None:
    """get_settings returns a Settings instance."""
    settings = get_settings()
    assert isinstance(settings, Settings)


def test_settings_from_test_environment() -> None:
    """conftest pins in-memory backends and the service token."""
    settings = get_settings()
    assert settings.app_name == "BioHub"
    assert settings.database_url == "sqlite+pysqlite://"
    assert settings.storage_backend == "memory"
    assert settings.search_backend == "memory"
    assert settings.service_token == TEST_SERVICE_TOKEN
    assert settings.s3_key_prefix == "biohub"


def test_generic_postgres_url_gets_psycopg_driver(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql://biohub:pw@db:5432/biohub")
    assert Settings().database_url == "postgresql+psycopg://biohub:pw@db:5432/biohub"


def test_empty_key_prefix_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("S3_KEY_PREFIX", "")
    assert Settings().s3_key_prefix == "biohub"


def test_numeric_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SIGNED_URL_EXPIRY_SECONDS", "60")
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "1024")
    monkeypatch.setenv("SEARCH_TIMEOUT", "2.5")
    monkeypatch.setenv("DEFAULT_STYLE_SCHEMA_ID", "7")
    settings = Settings()
    assert settings.signed_url_expiry_seconds == 60
    assert settings.max_upload_bytes == 1024
    assert settings.search_timeout == 2.5
    assert settings.default_style_schema_id == 7


def test_elasticsearch_url_trailing_slash_removed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ELASTICSEARCH_URL", "http://search:9200/")
    assert Settings().elasticsearch_url == "http://search:9200"
