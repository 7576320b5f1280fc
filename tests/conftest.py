"""
Pytest configuration and fixtures.

Environment is set before any project import so config.settings picks up
an in-memory database and throwaway upload directories.
"""
import os
import tempfile

_TMP_ROOT = tempfile.mkdtemp(prefix="fixmycity-tests-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-0123456789"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_ROOT, "uploads")
os.environ["UPLOAD_TMP_DIR"] = os.path.join(_TMP_ROOT, "uploads-tmp")
os.environ["LOG_LEVEL"] = "DEBUG"

import io  # noqa: E402
import uuid  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Callable, List, Optional  # noqa: E402

import numpy as np  # noqa: E402
import pytest  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from config.database import Base  # noqa: E402
import api.issues.issues_model  # noqa: E402,F401
from api.issues.issues_service import IssueStore  # noqa: E402
from config.ingestion_config import IngestionConfig  # noqa: E402
from helpers.storage_service import LocalObjectStorage  # noqa: E402
from services.ingestion_errors import UploadError  # noqa: E402
from services.ingestion_service import IncomingImage, IssueDraft, IssueIngestionService  # noqa: E402


def make_image(seed: int = 0, size=(400, 300), grid: int = 4, fmt: str = "PNG") -> bytes:
    """
    Smooth synthetic photo: a small random grid upscaled with bicubic
    filtering. Different seeds give unrelated hashes.
    """
    rng = np.random.default_rng(seed)
    cells = rng.integers(0, 256, size=(grid, grid, 3), dtype=np.uint8)
    img = Image.fromarray(cells, "RGB").resize(size, Image.Resampling.BICUBIC)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def crop_image(data: bytes, fraction: float = 0.05) -> bytes:
    """Trim `fraction` of width and height, split evenly between both sides."""
    with Image.open(io.BytesIO(data)) as img:
        w, h = img.size
        dx, dy = int(w * fraction / 2), int(h * fraction / 2)
        cropped = img.crop((dx, dy, w - dx, h - dy))
        buf = io.BytesIO()
        cropped.save(buf, format="PNG")
    return buf.getvalue()


class RecordingStorage(LocalObjectStorage):
    """Local storage that records calls and can fail the n-th put."""

    def __init__(self, root: Path, fail_on: Optional[int] = None, fail_deletes: bool = False):
        super().__init__(root, "/uploads")
        self.fail_on = fail_on
        self.fail_deletes = fail_deletes
        self.puts: List[str] = []
        self.deletes: List[str] = []

    def put(self, data, folder, name):
        if self.fail_on is not None and len(self.puts) == self.fail_on:
            self.puts.append(f"{folder}/{name}:failed")
            raise UploadError(f"storage unavailable for {name}")
        stored = super().put(data, folder, name)
        self.puts.append(stored.storage_id)
        return stored

    def delete(self, storage_id):
        self.deletes.append(storage_id)
        if self.fail_deletes:
            raise RuntimeError(f"cannot delete {storage_id}")
        return super().delete(storage_id)

    def stored_files(self) -> List[Path]:
        return [p for p in self.root.rglob("*") if p.is_file()]


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db_session) -> IssueStore:
    return IssueStore(db_session)


@pytest.fixture
def storage(tmp_path) -> RecordingStorage:
    return RecordingStorage(tmp_path / "objects")


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def service(store, storage, events) -> IssueIngestionService:
    return IssueIngestionService(
        store=store,
        storage=storage,
        config=IngestionConfig(),
        event_bus=lambda name, payload: events.append((name, payload)),
    )


@pytest.fixture
def incoming(tmp_path) -> Callable[..., IncomingImage]:
    """Write bytes to a temp file the way the upload route spools photos."""
    spool = tmp_path / "spool"
    spool.mkdir()

    def _make(data: bytes, filename: str = "photo.png") -> IncomingImage:
        path = spool / f"{uuid.uuid4().hex}{Path(filename).suffix}"
        path.write_bytes(data)
        return IncomingImage(filename=filename, temp_path=path, content_type="image/png")

    return _make


@pytest.fixture
def draft() -> Callable[..., IssueDraft]:
    def _make(**overrides) -> IssueDraft:
        values = dict(
            title="Pothole on Main Street",
            description="Large pothole near the bus stop, cars swerving into the other lane to avoid it.",
            category="ROADS",
            latitude=12.9716,
            longitude=77.5946,
            address="Main Street",
        )
        values.update(overrides)
        return IssueDraft(**values)

    return _make
