"""Media parsing: uploads and stored objects to files and archives."""

from biohub.media.parser import (
    ArchiveFile,
    MediaFile,
    StoredObject,
    UploadedFile,
    guess_mimetype,
    is_zip_mimetype,
    parse_unknown_media,
    parse_zip,
)

__all__ = [
    "ArchiveFile",
    "MediaFile",
    "StoredObject",
    "UploadedFile",
    "guess_mimetype",
    "is_zip_mimetype",
    "parse_unknown_media",
    "parse_zip",
]
