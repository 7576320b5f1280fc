from dataclasses import dataclass, field
from typing import Tuple

DEFAULT_ALLOWED_FORMATS = ("JPEG", "PNG", "WEBP", "GIF")


@dataclass(frozen=True)
class IngestionConfig:
    """
    Knobs consumed by the issue ingestion pipeline.

    Built once from Settings and handed to IssueIngestionService, so the
    pipeline never reads environment state on its own.
    """
    max_image_bytes: int = 5 * 1024 * 1024
    similarity_threshold: int = 10          # Hamming bits out of 64
    text_window_days: int = 7
    text_duplicate_threshold: float = 0.75
    allowed_formats: Tuple[str, ...] = field(default=DEFAULT_ALLOWED_FORMATS)
    serialize_text_check: bool = True

    @classmethod
    def from_settings(cls, settings) -> "IngestionConfig":
        return cls(
            max_image_bytes=settings.MAX_IMAGE_SIZE,
            similarity_threshold=settings.PHASH_THRESHOLD,
            text_window_days=settings.TEXT_DUPLICATE_WINDOW_DAYS,
            text_duplicate_threshold=settings.TEXT_DUPLICATE_THRESHOLD,
            allowed_formats=tuple(settings.allowed_image_formats_list),
            serialize_text_check=settings.SERIALIZE_TEXT_CHECK,
        )
