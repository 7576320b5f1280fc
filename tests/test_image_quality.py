"""
Tests for the pre-upload quality gate.
"""
from helpers.image_hashing import ImageMetadata
from helpers.image_quality import check_quality

MAX_BYTES = 5 * 1024 * 1024


def meta(width=640, height=480, byte_size=80_000, fmt="JPEG") -> ImageMetadata:
    return ImageMetadata(width=width, height=height, byte_size=byte_size, format=fmt)


class TestCheckQuality:
    def test_typical_photo_passes(self) -> None:
        report = check_quality(meta(), MAX_BYTES)

        assert report.ok
        assert report.issues == []
        assert report.warnings == []

    def test_unreadable_metadata_fails_closed(self) -> None:
        report = check_quality(None, MAX_BYTES)

        assert not report.ok
        assert report.issues

    def test_too_small_is_rejected(self) -> None:
        report = check_quality(meta(width=50, height=50), MAX_BYTES)

        assert not report.ok
        assert any("too small" in issue for issue in report.issues)

    def test_dimension_bounds_are_inclusive(self) -> None:
        assert check_quality(meta(width=100, height=100), MAX_BYTES).ok
        assert check_quality(meta(width=8000, height=8000), MAX_BYTES).ok
        assert not check_quality(meta(width=99, height=400), MAX_BYTES).ok
        assert not check_quality(meta(width=400, height=8001), MAX_BYTES).ok

    def test_oversize_file_is_rejected(self) -> None:
        report = check_quality(meta(byte_size=MAX_BYTES + 1), MAX_BYTES)

        assert not report.ok
        assert any("size exceeds" in issue for issue in report.issues)

    def test_format_outside_allow_list_is_rejected(self) -> None:
        report = check_quality(meta(fmt="BMP"), MAX_BYTES, allowed_formats=("jpeg", "png"))

        assert not report.ok
        assert report.issues == ["Invalid image format: BMP"]

    def test_format_not_checked_without_allow_list(self) -> None:
        assert check_quality(meta(fmt="BMP"), MAX_BYTES).ok

    def test_small_file_only_warns(self) -> None:
        report = check_quality(meta(byte_size=1200), MAX_BYTES)

        assert report.ok
        assert len(report.warnings) == 1

    def test_multiple_issues_are_all_reported(self) -> None:
        report = check_quality(meta(width=20, height=20, byte_size=MAX_BYTES * 2, fmt="TIFF"), MAX_BYTES, ["PNG"])

        assert not report.ok
        assert len(report.issues) == 3
