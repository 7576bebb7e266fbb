"""
Application configuration. Loads from environment variables.
Secrets and sensitive config must never be hardcoded.
"""

import os

from dotenv import load_dotenv

load_dotenv()
from functools import lru_cache
from typing import Optional


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached settings instance."""
    return Settings()


class Settings:
    """Application settings loaded from environment."""

    # App
    app_name: str = "BioHub"
    debug: bool = False

    # Database (postgresql+psycopg for psycopg3; use postgresql:// for psycopg2)
    database_url: str = "postgresql+psycopg://localhost:5432/biohub_dev"
    db_connect_timeout: int = 10  # seconds

    # Security
    service_token: str = ""  # Required for /api/dwc/* endpoints

    # Object storage: "s3" or "memory"
    storage_backend: str = "s3"
    object_store_url: Optional[str] = None
    object_store_bucket: str = ""
    object_store_access_key_id: Optional[str] = None
    object_store_secret_key_id: Optional[str] = None
    object_store_region: str = "ca-central-1"
    s3_key_prefix: str = "biohub"
    signed_url_expiry_seconds: int = 300

    # Search: "elasticsearch" or "memory"
    search_backend: str = "elasticsearch"
    elasticsearch_url: str = "http://localhost:9200"
    elasticsearch_index: str = "eml"
    search_timeout: float = 10.0

    # Pipeline reference data
    default_source: str = "BIOHUB"
    default_style_schema_id: int = 1
    default_security_schema_id: int = 1

    # Intake
    max_upload_bytes: int = 500 * 1024 * 1024

    def __init__(self) -> None:
        self.app_name = os.getenv("APP_NAME", self.app_name)
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

        default_user = os.getenv("PGUSER") or os.getenv("USER") or "postgres"
        default_url = (
            f"postgresql+psycopg://{default_user}:"
            f"{os.getenv('PGPASSWORD', '')}@"
            f"{os.getenv('PGHOST', 'localhost')}:"
            f"{os.getenv('PGPORT', '5432')}/"
            f"{os.getenv('PGDATABASE', 'biohub_dev')}"
        )
        raw_url = os.getenv("DATABASE_URL", default_url)
        # Ensure psycopg3 driver if URL uses generic postgresql://
        if raw_url.startswith("postgresql://") and not raw_url.startswith("postgresql+psycopg"):
            raw_url = raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
        self.database_url = raw_url
        self.db_connect_timeout = int(os.getenv("DB_CONNECT_TIMEOUT", str(self.db_connect_timeout)))

        self.service_token = os.getenv("SERVICE_TOKEN", "")

        self.storage_backend = os.getenv("STORAGE_BACKEND", self.storage_backend).lower()
        self.object_store_url = os.getenv("OBJECT_STORE_URL") or None
        self.object_store_bucket = os.getenv("OBJECT_STORE_BUCKET_NAME", "")
        self.object_store_access_key_id = os.getenv("OBJECT_STORE_ACCESS_KEY_ID")
        self.object_store_secret_key_id = os.getenv("OBJECT_STORE_SECRET_KEY_ID")
        self.object_store_region = os.getenv("OBJECT_STORE_REGION", self.object_store_region)
        # Key prefix: empty env value falls back to the default so keys are never rootless
        self.s3_key_prefix = os.getenv("S3_KEY_PREFIX") or self.s3_key_prefix
        self.signed_url_expiry_seconds = int(
            os.getenv("SIGNED_URL_EXPIRY_SECONDS", str(self.signed_url_expiry_seconds))
        )

        self.search_backend = os.getenv("SEARCH_BACKEND", self.search_backend).lower()
        self.elasticsearch_url = os.getenv("ELASTICSEARCH_URL", self.elasticsearch_url).rstrip("/")
        self.elasticsearch_index = os.getenv("ELASTICSEARCH_EML_INDEX", self.elasticsearch_index)
        self.search_timeout = float(os.getenv("SEARCH_TIMEOUT", str(self.search_timeout)))

        self.default_source = os.getenv("DEFAULT_SOURCE", self.default_source)
        self.default_style_schema_id = int(
            os.getenv("DEFAULT_STYLE_SCHEMA_ID", str(self.default_style_schema_id))
        )
        self.default_security_schema_id = int(
            os.getenv("DEFAULT_SECURITY_SCHEMA_ID", str(self.default_security_schema_id))
        )

        self.max_upload_bytes = int(os.getenv("MAX_UPLOAD_BYTES", str(self.max_upload_bytes)))
