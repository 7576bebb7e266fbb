"""Service constants read from the database once per request.

Loaded explicitly by :func:`load_service_constants` and handed to route
handlers through a FastAPI dependency; nothing is cached at module level.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from biohub.errors import ApiClientError
from biohub.repositories.reference import list_source_transform_sources


@dataclass(frozen=True)
class ServiceConstants:
    # Source systems allowed to submit; each has a registered EML transform
    service_client_sources: frozenset[str] = field(default_factory=frozenset)

    def require_known_source(self, source: str) -> str:
        if source not in self.service_client_sources:
            raise ApiClientError("Unknown source system", [f"source={source}"])
        return source


def load_service_constants(db: Session) -> ServiceConstants:
    return ServiceConstants(service_client_sources=frozenset(list_source_transform_sources(db)))
