"""Object storage clients.

``S3ObjectStore`` talks to any S3-compatible endpoint through boto3.
``InMemoryObjectStore`` keeps objects in a dict for local runs and tests.
Select one with STORAGE_BACKEND (``s3`` | ``memory``).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from uuid import UUID

import boto3
from botocore.exceptions import ClientError

from biohub.config import get_settings
from biohub.errors import ApiGeneralError
from biohub.media.parser import StoredObject

logger = logging.getLogger(__name__)


def generate_dataset_key(package_id: UUID, submission_id: int, file_name: str) -> str:
    """``{prefix}/datasets/{uuid}/dwca/{submission_id}/{file_name}``."""
    prefix = get_settings().s3_key_prefix
    return f"{prefix}/datasets/{package_id}/dwca/{submission_id}/{file_name}"


def generate_artifact_key(package_id: UUID, artifact_id: int, file_name: str) -> str:
    """``{prefix}/datasets/{uuid}/artifacts/{artifact_id}/{file_name}``."""
    prefix = get_settings().s3_key_prefix
    return f"{prefix}/datasets/{package_id}/artifacts/{artifact_id}/{file_name}"


def generate_stylesheet_key(source: str, eml_version: str | None, file_name: str) -> str:
    """``{prefix}/stylesheets/{source}/{eml_version or "default"}/{file_name}``."""
    prefix = get_settings().s3_key_prefix
    return f"{prefix}/stylesheets/{source}/{eml_version or 'default'}/{file_name}"


class ObjectStore(ABC):
    """Minimal object storage interface used by the pipeline."""

    @abstractmethod
    def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        ...

    @abstractmethod
    def get_object(self, key: str) -> StoredObject | None:
        """Return the object, or None when no object exists under ``key``."""
        ...

    @abstractmethod
    def signed_url(self, key: str, expires_in: int) -> str:
        ...


class S3ObjectStore(ObjectStore):
    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        region: str | None = None,
        client=None,
    ) -> None:
        self.bucket = bucket
        self._client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
        )

    def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        params = {"Bucket": self.bucket, "Key": key, "Body": body, "Metadata": metadata or {}}
        if content_type:
            params["ContentType"] = content_type
        try:
            self._client.put_object(**params)
        except ClientError as exc:
            logger.exception("S3 put_object failed for %s", key)
            raise ApiGeneralError("Failed to upload file to storage", [str(exc)]) from exc

    def get_object(self, key: str) -> StoredObject | None:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404"):
                return None
            logger.exception("S3 get_object failed for %s", key)
            raise ApiGeneralError("Failed to read file from storage", [str(exc)]) from exc
        body = response.get("Body")
        return StoredObject(
            body=body.read() if body is not None else None,
            content_type=response.get("ContentType"),
            metadata=response.get("Metadata") or {},
        )

    def signed_url(self, key: str, expires_in: int) -> str:
        return self._client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )


class InMemoryObjectStore(ObjectStore):
    """Dict-backed store. Signed URLs use a ``memory://`` scheme."""

    def __init__(self) -> None:
        self.objects: dict[str, StoredObject] = {}

    def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        self.objects[key] = StoredObject(
            body=body, content_type=content_type, metadata=dict(metadata or {})
        )

    def get_object(self, key: str) -> StoredObject | None:
        return self.objects.get(key)

    def signed_url(self, key: str, expires_in: int) -> str:
        return f"memory://{key}?expires_in={expires_in}"


@lru_cache(maxsize=1)
def get_object_store() -> ObjectStore:
    """Return the configured object store (cached)."""
    settings = get_settings()
    if settings.storage_backend == "memory":
        logger.warning("Using in-memory object storage; uploads are lost on restart")
        return InMemoryObjectStore()
    return S3ObjectStore(
        bucket=settings.object_store_bucket,
        endpoint_url=settings.object_store_url,
        access_key_id=settings.object_store_access_key_id,
        secret_access_key=settings.object_store_secret_key_id,
        region=settings.object_store_region,
    )
