# helpers/image_hashing.py
"""
Content fingerprints for uploaded photos.

Each photo gets two 64-bit perceptual hashes, rendered as strings of
'0'/'1' in row-major order, plus an md5 digest of the raw bytes:

- average hash: 8x8 grayscale, bit set when the sample is above the mean
- difference hash: 9x8 grayscale, bit set when a sample is brighter than
  its right-hand neighbour
- exact digest: md5 of the bytes, for byte-identical resubmissions
"""
import hashlib
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import imagehash
import numpy as np
from PIL import Image, UnidentifiedImageError

from services.ingestion_errors import DecodeError

logger = logging.getLogger(__name__)

HASH_SIZE = 8


@dataclass(frozen=True)
class Fingerprint:
    average_hash: str
    difference_hash: str
    exact_digest: Optional[str]


@dataclass(frozen=True)
class ImageMetadata:
    width: int
    height: int
    byte_size: int
    format: Optional[str] = None


def _bits_to_string(bits: np.ndarray) -> str:
    return "".join("1" if b else "0" for b in bits.flatten())


def _open_image(data: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Unable to decode image: {e}") from e
    return img


def average_hash(img: Image.Image) -> str:
    return _bits_to_string(imagehash.average_hash(img, hash_size=HASH_SIZE).hash)


def difference_hash(img: Image.Image) -> str:
    gray = img.convert("L").resize((HASH_SIZE + 1, HASH_SIZE), Image.Resampling.LANCZOS)
    pixels = np.asarray(gray, dtype=np.int16)
    # left sample brighter than right sample
    return _bits_to_string(pixels[:, :-1] > pixels[:, 1:])


def exact_digest(data: bytes) -> Optional[str]:
    """md5 hex of the raw bytes, or None where md5 is unavailable (FIPS builds)."""
    try:
        return hashlib.md5(data, usedforsecurity=False).hexdigest()
    except ValueError:
        logger.warning("md5 digest unavailable; exact duplicate detection disabled for this image")
        return None


def fingerprint(data: bytes) -> Fingerprint:
    """
    Compute the (average_hash, difference_hash, exact_digest) triple.
    Raises DecodeError when the bytes are not a readable raster image.
    """
    if not data:
        raise DecodeError("Empty image payload")
    img = _open_image(data)
    try:
        a_hash = average_hash(img)
        d_hash = difference_hash(img)
    except (OSError, ValueError) as e:
        raise DecodeError(f"Unable to hash image: {e}") from e
    finally:
        img.close()

    return Fingerprint(
        average_hash=a_hash,
        difference_hash=d_hash,
        exact_digest=exact_digest(data),
    )


def read_metadata(data: bytes) -> Optional[ImageMetadata]:
    """Parse dimensions and format from the image header; None if unreadable."""
    if not data:
        return None
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
            fmt = img.format
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        logger.debug(f"Metadata extraction failed: {e}")
        return None
    return ImageMetadata(width=width, height=height, byte_size=len(data), format=fmt)
