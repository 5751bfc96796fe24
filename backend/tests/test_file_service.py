"""
DentalHub Backend: Case File Service Tests
==========================================

What we test:
    ✅ Supported dental/imaging extensions pass, others are rejected
    ✅ Extension check is case-insensitive
    ✅ Size bounds (empty, at limit, over limit)
    ✅ Generated URL layout and uniqueness
"""

import re

import pytest

from dentalhub.exceptions import ValidationError
from dentalhub.services.file_service import ALLOWED_EXTENSIONS, CaseFileService

MB = 1024 * 1024


class TestCaseFileService:

    def setup_method(self):
        self.service = CaseFileService(url_prefix="https://cdn.dentalhub.io/", max_size=10 * MB)

    # ── Extension ─────────────────────────────────────────────────────────

    @pytest.mark.parametrize("name", ["scan.dcm", "arch.stl", "prep.ply", "model.obj",
                                      "smile.png", "shade.jpg", "shade.jpeg", "report.pdf"])
    def test_supported_extensions(self, name):
        assert self.service.validate_extension(name) in ALLOWED_EXTENSIONS

    def test_extension_is_case_insensitive(self):
        assert self.service.validate_extension("UPPER_ARCH.STL") == ".stl"

    @pytest.mark.parametrize("name", ["script.exe", "archive.zip", "noextension"])
    def test_unsupported_extensions(self, name):
        with pytest.raises(ValidationError, match="not supported") as exc_info:
            self.service.validate_extension(name)
        assert exc_info.value.field == "file_name"

    # ── Size ──────────────────────────────────────────────────────────────

    def test_empty_file_rejected(self):
        with pytest.raises(ValidationError, match="File is empty"):
            self.service.validate_size(0)

    def test_size_at_limit_accepted(self):
        self.service.validate_size(10 * MB)

    def test_oversized_file_rejected(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(10 * MB + 1)

    # ── URL ───────────────────────────────────────────────────────────────

    def test_url_layout(self):
        url = self.service.prepare_upload(42, "Crown Prep.STL", 2048)
        assert re.match(
            r"^https://cdn\.dentalhub\.io/cases/42/\d{4}/\d{2}/\d{2}/[0-9a-f-]{36}\.stl$", url
        )
        assert "Crown" not in url

    def test_urls_are_unique(self):
        urls = {self.service.build_file_url(1, ".png") for _ in range(20)}
        assert len(urls) == 20

    def test_extension_checked_before_size(self):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.prepare_upload(1, "virus.exe", 0)
