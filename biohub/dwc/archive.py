"""Darwin Core Archive model.

A :class:`DWCArchive` classifies the members of an :class:`ArchiveFile` into
fixed worksheet roles once, at construction. Worksheet contents are decoded
lazily and cached on the :class:`CSVWorksheet` for the life of the archive
object; nothing is shared between archives.
"""

from __future__ import annotations

import csv
import io
import posixpath
from dataclasses import dataclass, field
from enum import Enum

from biohub.errors import ApiClientError
from biohub.media.parser import ArchiveFile, MediaFile


class WorksheetRole(str, Enum):
    EVENT = "event"
    LOCATION = "location"
    MEASUREMENT_OR_FACT = "measurementorfact"
    OCCURRENCE = "occurrence"
    RESOURCE_RELATIONSHIP = "resourcerelationship"
    TAXON = "taxon"


EML_FILE_NAME = "eml"
META_FILE_NAME = "meta"

# Canonical base name (lower case, no extension) -> role
_WORKSHEET_FILE_NAMES: dict[str, WorksheetRole] = {role.value: role for role in WorksheetRole}


def _canonical_name(file_name: str) -> str:
    stem, _ = posixpath.splitext(posixpath.basename(file_name))
    return stem.strip().lower()


class CSVWorksheet:
    """One CSV member of an archive with cached headers and rows."""

    def __init__(self, name: str, media_file: MediaFile) -> None:
        self.name = name
        self.media_file = media_file
        self._headers: list[str] | None = None
        self._rows: list[list[str]] | None = None

    def _parse(self) -> None:
        text = self.media_file.data.decode("utf-8-sig", errors="replace")
        reader = csv.reader(io.StringIO(text, newline=""))
        records = [row for row in reader if any(cell.strip() for cell in row)]
        if not records:
            self._headers, self._rows = [], []
            return
        self._headers = [header.strip() for header in records[0]]
        self._rows = records[1:]

    def get_headers(self) -> list[str]:
        if self._headers is None:
            self._parse()
        return self._headers

    def get_rows(self) -> list[list[str]]:
        if self._rows is None:
            self._parse()
        return self._rows

    def get_header_index(self, header: str) -> int | None:
        """Index of the first column named ``header``, or None."""
        try:
            return self.get_headers().index(header)
        except ValueError:
            return None

    @staticmethod
    def get_cell(row: list[str], index: int | None) -> str | None:
        """Stripped cell value at ``index``; None for a missing column, short row or blank cell."""
        if index is None or index >= len(row):
            return None
        value = row[index].strip()
        return value or None

    def get_row_dicts(self) -> list[dict[str, str]]:
        """Rows as header -> value dicts, padded or truncated to the header width."""
        headers = self.get_headers()
        width = len(headers)
        return [
            dict(zip(headers, (row + [""] * width)[:width]))
            for row in self.get_rows()
        ]


@dataclass
class DWCWorksheets:
    event: CSVWorksheet | None = None
    location: CSVWorksheet | None = None
    measurementorfact: CSVWorksheet | None = None
    occurrence: CSVWorksheet | None = None
    resourcerelationship: CSVWorksheet | None = None
    taxon: CSVWorksheet | None = None


@dataclass
class DWCArchive:
    """Classified view over a Darwin Core archive upload."""

    raw: ArchiveFile
    worksheets: DWCWorksheets = field(default_factory=DWCWorksheets)
    eml: MediaFile | None = None
    meta: MediaFile | None = None
    unclassified: list[MediaFile] = field(default_factory=list)

    @classmethod
    def from_media(cls, media: MediaFile | ArchiveFile | None) -> "DWCArchive":
        """Build a DWCArchive; anything but an ArchiveFile is rejected."""
        if not isinstance(media, ArchiveFile):
            raise ApiClientError("Media is not a valid DwC Archive File")
        archive = cls(raw=media)
        archive._classify()
        return archive

    def _classify(self) -> None:
        for media_file in self.raw.media_files:
            canonical = _canonical_name(media_file.name)
            role = _WORKSHEET_FILE_NAMES.get(canonical)
            if role is not None:
                # First file for a role wins; later duplicates are reported as unclassified
                if getattr(self.worksheets, role.value) is None:
                    setattr(self.worksheets, role.value, CSVWorksheet(role.value, media_file))
                    continue
            elif canonical == EML_FILE_NAME and self.eml is None:
                self.eml = media_file
                continue
            elif canonical == META_FILE_NAME and self.meta is None:
                self.meta = media_file
                continue
            self.unclassified.append(media_file)

    @property
    def name(self) -> str:
        return self.raw.name

    def worksheet(self, role: WorksheetRole) -> CSVWorksheet | None:
        return getattr(self.worksheets, role.value)

    def present_roles(self) -> list[WorksheetRole]:
        """Roles that have a worksheet, in enum order."""
        return [role for role in WorksheetRole if self.worksheet(role) is not None]

    def is_metadata_only(self) -> bool:
        """True when the archive carries EML but no worksheets."""
        return self.eml is not None and not self.present_roles()

    def eml_text(self) -> str | None:
        if self.eml is None:
            return None
        return self.eml.data.decode("utf-8-sig", errors="replace")
