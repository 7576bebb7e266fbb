"""Virus scanning hook for uploads.

Scanning engines are deployed outside this service. The pipeline only needs a
yes/no answer per upload, so the interface is a single method.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from biohub.media.parser import UploadedFile


class VirusScanner(ABC):
    @abstractmethod
    def scan(self, upload: UploadedFile) -> bool:
        """Return True when the upload is clean."""
        ...


class PassthroughScanner(VirusScanner):
    """Accepts every upload. Used when no scanning engine is configured."""

    def scan(self, upload: UploadedFile) -> bool:
        return True


def get_virus_scanner() -> VirusScanner:
    return PassthroughScanner()
