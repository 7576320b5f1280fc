"""
Error taxonomy for issue ingestion.

Anything raised before the issue row exists needs no cleanup; anything
raised after it is re-raised only once the compensation log has been
replayed.
"""
from typing import List, Optional


class IngestionError(Exception):
    """Base class for failures that abort an ingestion attempt."""


class ValidationError(IngestionError):
    """Missing or malformed input; raised before any side effect."""

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


class DecodeError(IngestionError):
    """Image bytes could not be decoded as a supported raster format."""


class QualityError(IngestionError):
    """Image rejected by the local quality gate."""

    def __init__(self, issues: List[str], photo_index: Optional[int] = None):
        super().__init__(", ".join(issues) or "Image failed quality checks")
        self.issues = list(issues)
        self.photo_index = photo_index


class UploadError(IngestionError):
    """Object storage refused or failed to store an image."""


class PersistenceWarning(UserWarning):
    """A fingerprint row could not be saved; duplicate detection degrades."""
