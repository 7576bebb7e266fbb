"""Scrape occurrence rows out of a DwC archive and persist them.

Occurrence rows are joined to their event and taxon rows by ``id``. Event and
taxon rows are indexed once per archive; when several rows share an ``id`` the
first one wins. Coordinates come from the event's ``verbatimCoordinates``:
UTM strings are tried first, then ``lat long`` pairs, and whatever parses is
projected to EPSG:4326. An unparseable coordinate is not an error; the row is
stored without geography.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from functools import lru_cache

from pyproj import Transformer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from biohub.dwc.archive import CSVWorksheet, DWCArchive, WorksheetRole
from biohub.errors import ApiError
from biohub.repositories.occurrence import insert_occurrence
from biohub.schemas.occurrence import RowFailure, ScrapedOccurrence, ScrapeOutcome, ScrapeResult

logger = logging.getLogger(__name__)

WGS84_SRID = 4326

_UTM_PATTERN = re.compile(
    r"^\s*(?P<zone>\d{1,2})\s*(?P<hemisphere>[NnSs])\s+"
    r"(?P<easting>-?\d+(?:\.\d+)?)\s+(?P<northing>-?\d+(?:\.\d+)?)\s*$"
)
_LAT_LONG_PATTERN = re.compile(
    r"^\s*(?P<lat>[-+]?\d+(?:\.\d+)?)\s*[,\s]\s*(?P<long>[-+]?\d+(?:\.\d+)?)\s*$"
)

EVENT_FIELDS = ("id", "verbatimCoordinates", "eventDate")
OCCURRENCE_FIELDS = (
    "id",
    "associatedTaxa",
    "lifeStage",
    "sex",
    "individualCount",
    "organismQuantity",
    "organismQuantityType",
)
TAXON_FIELDS = ("id", "vernacularName")


@dataclass(frozen=True)
class UTM:
    zone: int
    northern: bool
    easting: float
    northing: float

    @property
    def srid(self) -> int:
        # WGS 84 / UTM: 326zz north, 327zz south
        return (32600 if self.northern else 32700) + self.zone


@dataclass(frozen=True)
class LatLong:
    lat: float
    long: float


@dataclass
class WorksheetColumns:
    """A worksheet, its rows and the resolved index of each field we read."""

    worksheet: CSVWorksheet | None
    rows: list[list[str]]
    indices: dict[str, int | None]

    def value(self, row: list[str], field: str) -> str | None:
        return CSVWorksheet.get_cell(row, self.indices.get(field))


def parse_utm_string(value: str | None) -> UTM | None:
    """Parse ``"<zone><N|S> <easting> <northing>"``, e.g. ``"9N 573674 6114170"``."""
    if not value:
        return None
    match = _UTM_PATTERN.match(value)
    if match is None:
        return None
    zone = int(match.group("zone"))
    if not 1 <= zone <= 60:
        return None
    return UTM(
        zone=zone,
        northern=match.group("hemisphere").upper() == "N",
        easting=float(match.group("easting")),
        northing=float(match.group("northing")),
    )


def parse_lat_long_string(value: str | None) -> LatLong | None:
    """Parse ``"<lat> <long>"`` or ``"<lat>, <long>"`` in decimal degrees."""
    if not value:
        return None
    match = _LAT_LONG_PATTERN.match(value)
    if match is None:
        return None
    lat = float(match.group("lat"))
    long = float(match.group("long"))
    if not (-90 <= lat <= 90 and -180 <= long <= 180):
        return None
    return LatLong(lat=lat, long=long)


@lru_cache(maxsize=128)
def _transformer(from_srid: int) -> Transformer:
    return Transformer.from_crs(f"EPSG:{from_srid}", f"EPSG:{WGS84_SRID}", always_xy=True)


def _ewkt_point(long: float, lat: float) -> str:
    return f"SRID={WGS84_SRID};POINT({long:.8f} {lat:.8f})"


def coordinates_to_geography(verbatim: str | None) -> str | None:
    """EWKT point in EPSG:4326 for a verbatim coordinate string, or None."""
    utm = parse_utm_string(verbatim)
    if utm is not None:
        long, lat = _transformer(utm.srid).transform(utm.easting, utm.northing)
        if not (math.isfinite(lat) and math.isfinite(long)) or abs(lat) > 90 or abs(long) > 180:
            return None
        return _ewkt_point(long, lat)
    lat_long = parse_lat_long_string(verbatim)
    if lat_long is not None:
        return _ewkt_point(lat_long.long, lat_long.lat)
    return None


def _to_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return int(number) if math.isfinite(number) and number.is_integer() else None


def _to_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _columns(archive: DWCArchive, role: WorksheetRole, fields: tuple[str, ...]) -> WorksheetColumns:
    worksheet = archive.worksheet(role)
    if worksheet is None:
        return WorksheetColumns(worksheet=None, rows=[], indices=dict.fromkeys(fields))
    return WorksheetColumns(
        worksheet=worksheet,
        rows=worksheet.get_rows(),
        indices={field: worksheet.get_header_index(field) for field in fields},
    )


def get_headers_and_rows(archive: DWCArchive) -> dict[WorksheetRole, WorksheetColumns]:
    """Rows and field indices for the event, occurrence and taxon worksheets."""
    return {
        WorksheetRole.EVENT: _columns(archive, WorksheetRole.EVENT, EVENT_FIELDS),
        WorksheetRole.OCCURRENCE: _columns(archive, WorksheetRole.OCCURRENCE, OCCURRENCE_FIELDS),
        WorksheetRole.TAXON: _columns(archive, WorksheetRole.TAXON, TAXON_FIELDS),
    }


def _index_by_id(columns: WorksheetColumns) -> dict[str, list[str]]:
    index: dict[str, list[str]] = {}
    for row in columns.rows:
        key = columns.value(row, "id")
        if key is not None and key not in index:
            index[key] = row
    return index


def scrape_occurrences(archive: DWCArchive) -> list[ScrapedOccurrence]:
    """Join occurrence rows to their event and taxon rows. Pure; touches no storage."""
    sheets = get_headers_and_rows(archive)
    events, occurrences, taxa = (
        sheets[WorksheetRole.EVENT],
        sheets[WorksheetRole.OCCURRENCE],
        sheets[WorksheetRole.TAXON],
    )
    events_by_id = _index_by_id(events)
    taxa_by_id = _index_by_id(taxa)

    scraped = []
    for row_number, row in enumerate(occurrences.rows, start=1):
        join_key = occurrences.value(row, "id")
        event_row = events_by_id.get(join_key) if join_key is not None else None
        taxon_row = taxa_by_id.get(join_key) if join_key is not None else None

        verbatim_coordinates = events.value(event_row, "verbatimCoordinates") if event_row else None
        scraped.append(
            ScrapedOccurrence(
                row_number=row_number,
                join_key=join_key,
                taxon_id=occurrences.value(row, "associatedTaxa"),
                life_stage=occurrences.value(row, "lifeStage"),
                sex=occurrences.value(row, "sex"),
                event_date=events.value(event_row, "eventDate") if event_row else None,
                vernacular_name=taxa.value(taxon_row, "vernacularName") if taxon_row else None,
                individual_count=_to_int(occurrences.value(row, "individualCount")),
                organism_quantity=_to_float(occurrences.value(row, "organismQuantity")),
                organism_quantity_type=occurrences.value(row, "organismQuantityType"),
                geography=coordinates_to_geography(verbatim_coordinates),
            )
        )
    return scraped


def scrape_and_upload_occurrences(
    db: Session, submission_id: int, archive: DWCArchive
) -> ScrapeResult:
    """Insert every scraped occurrence in its own SAVEPOINT.

    A failing row is rolled back alone and reported; rows inserted before it
    stay in the caller's transaction.
    """
    occurrence_ids: list[int] = []
    failures: list[RowFailure] = []
    scraped = scrape_occurrences(archive)

    for occurrence in scraped:
        try:
            with db.begin_nested():
                occurrence_ids.append(insert_occurrence(db, submission_id, occurrence))
        except (ApiError, SQLAlchemyError) as exc:
            if isinstance(exc, ApiError):
                message = exc.message
            else:
                message = "Failed to insert occurrence record"
            logger.warning(
                "Occurrence row %s (id=%s) of submission %s not inserted: %s",
                occurrence.row_number,
                occurrence.join_key,
                submission_id,
                message,
            )
            failures.append(
                RowFailure(
                    row_number=occurrence.row_number,
                    join_key=occurrence.join_key,
                    message=message,
                )
            )

    if not failures:
        outcome = ScrapeOutcome.COMPLETE
    elif occurrence_ids:
        outcome = ScrapeOutcome.PARTIAL
    else:
        outcome = ScrapeOutcome.FAILED
    logger.info(
        "Scraped submission %s: %d inserted, %d failed (%s)",
        submission_id,
        len(occurrence_ids),
        len(failures),
        outcome.value,
    )
    return ScrapeResult(outcome=outcome, occurrence_ids=occurrence_ids, failures=failures)
