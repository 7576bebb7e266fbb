"""Darwin Core Archive model and normalization."""

from biohub.dwc.archive import CSVWorksheet, DWCArchive, DWCWorksheets, WorksheetRole
from biohub.dwc.normalize import normalize_dwc_archive

__all__ = [
    "CSVWorksheet",
    "DWCArchive",
    "DWCWorksheets",
    "WorksheetRole",
    "normalize_dwc_archive",
]
