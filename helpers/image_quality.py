# helpers/image_quality.py
"""
Local checks run on image metadata before any hashing or upload.
No external moderation service is consulted.
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from helpers.image_hashing import ImageMetadata

MIN_DIMENSION = 100
MAX_DIMENSION = 8000
SUSPICIOUS_BYTE_SIZE = 5000


@dataclass
class QualityReport:
    ok: bool
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def check_quality(
    metadata: Optional[ImageMetadata],
    max_bytes: int,
    allowed_formats: Optional[Iterable[str]] = None,
) -> QualityReport:
    # fail closed
    if metadata is None:
        return QualityReport(ok=False, issues=["Could not read image metadata"])

    issues: List[str] = []
    warnings: List[str] = []
    width = metadata.width or 0
    height = metadata.height or 0
    byte_size = metadata.byte_size or 0

    if width < MIN_DIMENSION or height < MIN_DIMENSION:
        issues.append(f"Image dimensions too small (min {MIN_DIMENSION}x{MIN_DIMENSION})")

    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        issues.append(f"Image dimensions too large (max {MAX_DIMENSION}x{MAX_DIMENSION})")

    if byte_size > max_bytes:
        issues.append(f"File size exceeds limit (max {max_bytes / 1024 / 1024:.1f}MB)")

    if allowed_formats is not None:
        allowed = {f.upper() for f in allowed_formats}
        if (metadata.format or "").upper() not in allowed:
            issues.append(f"Invalid image format: {metadata.format or 'unknown'}")

    if 0 < byte_size < SUSPICIOUS_BYTE_SIZE:
        warnings.append("File size unusually small - may be blank or corrupted")

    return QualityReport(ok=not issues, issues=issues, warnings=warnings)
