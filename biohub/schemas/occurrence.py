"""Occurrence scrape DTOs."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ScrapeOutcome(str, Enum):
    COMPLETE = "COMPLETE"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class ScrapedOccurrence(BaseModel):
    """One occurrence row joined with its event and taxon, ready to insert."""

    model_config = ConfigDict(extra="forbid")

    row_number: int = Field(..., description="1-based data row in occurrence.txt")
    join_key: str | None = None
    taxon_id: str | None = None
    life_stage: str | None = None
    sex: str | None = None
    event_date: str | None = None
    vernacular_name: str | None = None
    individual_count: int | None = None
    organism_quantity: float | None = None
    organism_quantity_type: str | None = None
    geography: str | None = Field(None, description="EWKT point in EPSG:4326")


class RowFailure(BaseModel):
    model_config = ConfigDict(extra="forbid")

    row_number: int
    join_key: str | None = None
    message: str


class ScrapeResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    outcome: ScrapeOutcome
    occurrence_ids: list[int] = Field(default_factory=list)
    failures: list[RowFailure] = Field(default_factory=list)
