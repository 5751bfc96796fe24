"""
DentalHub Backend: Case File Metadata Service
=============================================

What:  Validates case-file descriptors and generates their storage URLs.
Who:   Called by CaseService.upload_case_file before the metadata row is
       written.
When:  After the RPC input has passed schema validation.

Scope:
    The binary payload never passes through this service. Uploads are
    registered by name, declared type and size; the client pushes bytes to
    the generated URL through the storage layer.

Checks:
    1. Extension:  must be one of the supported dental / imaging formats
    2. Size:       1 byte up to ``settings.max_upload_size``
    3. URL:        UUID filename inside a date-organized, per-case prefix,
                   so no user input ever reaches the path
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Optional

from dentalhub.config import settings
from dentalhub.exceptions import ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
# DICOM scans, 3D meshes from intraoral scanners, photos and reports
ALLOWED_EXTENSIONS = {".dcm", ".stl", ".ply", ".obj", ".png", ".jpg", ".jpeg", ".pdf"}


class CaseFileService:
    """
    Directory structure of generated URLs:

        {file_url_prefix}/
        └── cases/
            └── 42/
                └── 2024/
                    └── 01/
                        └── 15/
                            └── a1b2c3d4-....stl
    """

    def __init__(self, url_prefix: Optional[str] = None, max_size: Optional[int] = None):
        self.url_prefix = (url_prefix or settings.file_url_prefix).rstrip("/")
        self.max_size = max_size or settings.max_upload_size

    def validate_extension(self, filename: str) -> str:
        """
        Returns: normalized extension (lowercase with dot).
        Raises:  ValidationError if the extension is not supported.
        """
        ext = PurePosixPath(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file_name",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, file_size: int) -> None:
        max_mb = self.max_size / (1024 * 1024)

        if file_size <= 0:
            raise ValidationError(
                message="File is empty.",
                field="file_size",
                context={"file_size": file_size},
            )

        if file_size > self.max_size:
            raise ValidationError(
                message=(
                    f"File size ({file_size / (1024 * 1024):.1f}MB) exceeds "
                    f"maximum of {max_mb:.0f}MB."
                ),
                field="file_size",
                context={"max_size_mb": max_mb, "file_size": file_size},
            )

    def build_file_url(self, case_id: int, extension: str) -> str:
        """Generate ``{prefix}/cases/{case_id}/YYYY/MM/DD/{uuid}{ext}``."""
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        return f"{self.url_prefix}/cases/{case_id}/{date_dir}/{uuid.uuid4()}{extension}"

    def prepare_upload(self, case_id: int, filename: str, file_size: int) -> str:
        """
        Full validation pipeline, cheapest check first.

        Returns: the generated file URL for the metadata row.
        """
        ext = self.validate_extension(filename)
        self.validate_size(file_size)
        file_url = self.build_file_url(case_id, ext)
        logger.debug("Prepared upload for case %s: %s", case_id, file_url)
        return file_url


# ── Singleton Instance ────────────────────────────────────────────────────
case_file_service = CaseFileService()
