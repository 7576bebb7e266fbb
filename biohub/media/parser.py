"""Turn an uploaded blob or a stored object into parsed media.

A zip-like body is unpacked into an :class:`ArchiveFile` whose members are
flattened to their base names. Anything else becomes a single
:class:`MediaFile`. Parsing never raises: an empty body or a corrupt archive
yields ``None`` and the caller decides what that means.
"""

from __future__ import annotations

import io
import logging
import mimetypes
import posixpath
import re
import zipfile
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_MIMETYPE = "application/octet-stream"

_ZIP_MIMETYPES = (
    re.compile(r"application/zip"),
    re.compile(r"application/x-zip-compressed"),
    re.compile(r"application/x-rar-compressed"),
    re.compile(r"application/octet-stream"),
)

# Types the stdlib table does not always know about
mimetypes.add_type("text/csv", ".csv")
mimetypes.add_type("application/xml", ".xml")
mimetypes.add_type("application/zip", ".zip")


@dataclass(frozen=True)
class MediaFile:
    """One named file with its sniffed mimetype and raw bytes."""

    name: str
    mimetype: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ArchiveFile:
    """An archive and its flattened member files."""

    name: str
    mimetype: str
    data: bytes
    media_files: list[MediaFile] = field(default_factory=list)


@dataclass(frozen=True)
class UploadedFile:
    """A file received from a client (multipart upload)."""

    filename: str
    data: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class StoredObject:
    """An object fetched from object storage.

    ``body`` is None when the store returned an object without content.
    ``metadata`` carries the original ``filename``.
    """

    body: bytes | None
    content_type: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def filename(self) -> str:
        return self.metadata.get("filename", "")


def guess_mimetype(filename: str) -> str:
    """Return the mimetype implied by the file extension, or octet-stream."""
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or DEFAULT_MIMETYPE


def is_zip_mimetype(mimetype: str | None) -> bool:
    if not mimetype:
        return False
    return any(pattern.search(mimetype) for pattern in _ZIP_MIMETYPES)


def parse_unknown_media(raw: UploadedFile | StoredObject) -> MediaFile | ArchiveFile | None:
    """Parse an upload or stored object into a MediaFile or ArchiveFile.

    Returns None when there is no body or the archive cannot be read.
    """
    if isinstance(raw, StoredObject):
        return _parse_stored_object(raw)
    return _parse_upload(raw)


def _parse_upload(upload: UploadedFile) -> MediaFile | ArchiveFile | None:
    if not upload.data:
        return None
    mimetype = guess_mimetype(upload.filename)
    if mimetype == DEFAULT_MIMETYPE and upload.content_type:
        mimetype = upload.content_type
    if is_zip_mimetype(mimetype):
        return parse_zip(upload.filename, mimetype, upload.data)
    return MediaFile(name=upload.filename, mimetype=mimetype, data=upload.data)


def _parse_stored_object(stored: StoredObject) -> MediaFile | ArchiveFile | None:
    if not stored.body:
        return None
    content_type = stored.content_type or DEFAULT_MIMETYPE
    filename = stored.filename
    if is_zip_mimetype(content_type):
        return parse_zip(filename, content_type, stored.body)
    return MediaFile(name=filename, mimetype=guess_mimetype(filename), data=stored.body)


def parse_zip(name: str, mimetype: str, data: bytes) -> ArchiveFile | None:
    """Unzip ``data`` into an ArchiveFile, skipping directory entries.

    Member names lose their directory part. Returns None for unreadable input.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            members = []
            for info in archive.infolist():
                if info.is_dir():
                    continue
                base_name = posixpath.basename(info.filename)
                if not base_name:
                    continue
                members.append(
                    MediaFile(
                        name=base_name,
                        mimetype=guess_mimetype(base_name),
                        data=archive.read(info),
                    )
                )
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError) as exc:
        logger.warning("Unable to unzip %s: %s", name or "<unnamed>", exc)
        return None
    return ArchiveFile(name=name, mimetype=mimetype, data=data, media_files=members)
