# helpers/storage_service.py
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from helpers.image_hashing import read_metadata
from services.ingestion_errors import UploadError

logger = logging.getLogger(__name__)

_FORMAT_EXTENSIONS = {"JPEG": ".jpg", "PNG": ".png", "WEBP": ".webp", "GIF": ".gif"}


@dataclass(frozen=True)
class StoredObject:
    url: str
    storage_id: str
    size: int
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None


class ObjectStorage(Protocol):
    def put(self, data: bytes, folder: str, name: str) -> StoredObject: ...

    def delete(self, storage_id: str) -> bool: ...


def _safe_name(name: str) -> str:
    return "".join(c if c.isalnum() or c in ("-", "_", ".") else "_" for c in name)


class LocalObjectStorage:
    """
    Durable photo storage on the local upload volume.
    storage_id is the path relative to the root, e.g. issues/<id>/photo_0_ab12.jpg
    """

    def __init__(self, root: Path, base_url: str = "/uploads"):
        self.root = Path(root)
        self.base_url = base_url
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, storage_id: str) -> Path:
        path = (self.root / storage_id).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"storage id escapes storage root: {storage_id}")
        return path

    def _make_public_url(self, rel: Path) -> str:
        return f"{self.base_url.rstrip('/')}/{rel.as_posix()}"

    def put(self, data: bytes, folder: str, name: str) -> StoredObject:
        meta = read_metadata(data)
        ext = _FORMAT_EXTENSIONS.get(meta.format if meta else None, "")
        filename = f"{_safe_name(name)}_{uuid.uuid4().hex[:12]}{ext}"
        rel = Path(folder) / filename
        dest = self.root / rel

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with open(dest, "wb") as fh:
                fh.write(data)
        except OSError as e:
            raise UploadError(f"Failed to store {rel.as_posix()}: {e}") from e

        logger.info(f"Stored {len(data)} bytes at {rel.as_posix()}")
        return StoredObject(
            url=self._make_public_url(rel),
            storage_id=rel.as_posix(),
            size=len(data),
            width=meta.width if meta else None,
            height=meta.height if meta else None,
            format=meta.format.lower() if meta and meta.format else None,
        )

    def delete(self, storage_id: str) -> bool:
        if not storage_id:
            logger.warning("No storage id provided for deletion")
            return False
        try:
            self._resolve(storage_id).unlink()
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as e:
            logger.error(f"Error deleting stored object {storage_id}: {e}")
            return False
        logger.info(f"Deleted stored object {storage_id}")
        return True
