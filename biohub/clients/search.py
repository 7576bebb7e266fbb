"""Search index clients.

``ElasticsearchIndex`` speaks the Elasticsearch document REST API over httpx.
``InMemorySearchIndex`` is for local runs and tests.
Select one with SEARCH_BACKEND (``elasticsearch`` | ``memory``).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any

import httpx

from biohub.config import get_settings
from biohub.errors import ApiGeneralError

logger = logging.getLogger(__name__)


class SearchIndex(ABC):
    @abstractmethod
    def upsert(self, id: str, index: str, document: dict[str, Any]) -> None:
        """Create or replace the document stored under ``id``."""
        ...

    @abstractmethod
    def delete(self, id: str, index: str) -> None:
        """Remove the document; a missing document is not an error."""
        ...

    @abstractmethod
    def get(self, id: str, index: str) -> dict[str, Any] | None:
        ...


class ElasticsearchIndex(SearchIndex):
    def __init__(self, base_url: str, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Search index %s %s failed: %s", method, path, exc)
            raise ApiGeneralError("Search index unavailable", [str(exc)]) from exc

    def upsert(self, id: str, index: str, document: dict[str, Any]) -> None:
        response = self._request("PUT", f"/{index}/_doc/{id}", json=document)
        if response.status_code not in (200, 201):
            raise ApiGeneralError(
                "Failed to index document",
                [f"status={response.status_code}", response.text[:500]],
            )

    def delete(self, id: str, index: str) -> None:
        response = self._request("DELETE", f"/{index}/_doc/{id}")
        if response.status_code not in (200, 404):
            raise ApiGeneralError(
                "Failed to delete indexed document",
                [f"status={response.status_code}", response.text[:500]],
            )

    def get(self, id: str, index: str) -> dict[str, Any] | None:
        response = self._request("GET", f"/{index}/_doc/{id}")
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise ApiGeneralError(
                "Failed to read indexed document",
                [f"status={response.status_code}", response.text[:500]],
            )
        return response.json().get("_source")


class InMemorySearchIndex(SearchIndex):
    def __init__(self) -> None:
        self.documents: dict[tuple[str, str], dict[str, Any]] = {}

    def upsert(self, id: str, index: str, document: dict[str, Any]) -> None:
        self.documents[(index, id)] = document

    def delete(self, id: str, index: str) -> None:
        self.documents.pop((index, id), None)

    def get(self, id: str, index: str) -> dict[str, Any] | None:
        return self.documents.get((index, id))


@lru_cache(maxsize=1)
def get_search_index() -> SearchIndex:
    """Return the configured search index (cached)."""
    settings = get_settings()
    if settings.search_backend == "memory":
        return InMemorySearchIndex()
    return ElasticsearchIndex(settings.elasticsearch_url, timeout=settings.search_timeout)
