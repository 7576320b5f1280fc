"""
Issue ingestion: text duplicate check, issue creation, per-photo quality
gate / fingerprint / advisory duplicate lookup / upload, and compensating
rollback across the database and object storage.

The database and the object store share no transaction. Every forward
action that leaves something behind registers its undo on a
CompensationLog; a failure after the issue row exists replays that log in
reverse before the original error is re-raised.
"""
import logging
import threading
import warnings
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from api.issues.issues_events import ISSUE_CREATED, publish
from api.issues.issues_model import ISSUE_CATEGORIES
from config.ingestion_config import IngestionConfig
from helpers.image_hashing import Fingerprint, fingerprint, read_metadata
from helpers.image_quality import check_quality
from helpers.similarity_matcher import find_similar
from helpers.storage_service import ObjectStorage, StoredObject
from helpers.text_similarity import TextDuplicateScorer
from services.ingestion_errors import (
    DecodeError,
    PersistenceWarning,
    QualityError,
    UploadError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class IngestionState(str, Enum):
    INIT = "INIT"
    TEXT_CHECKED = "TEXT_CHECKED"
    RECORD_CREATED = "RECORD_CREATED"
    VALIDATED = "VALIDATED"
    FINGERPRINTED = "FINGERPRINTED"
    UPLOADED = "UPLOADED"
    PHOTOS_COMMITTED = "PHOTOS_COMMITTED"
    FINGERPRINTS_STORED = "FINGERPRINTS_STORED"
    DONE = "DONE"
    ABORTED = "ABORTED"


@dataclass
class IssueDraft:
    title: Optional[str]
    description: Optional[str]
    category: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    address: Optional[str] = None
    priority: Optional[str] = "MEDIUM"
    reported_by: Optional[int] = None
    city: Optional[str] = None


@dataclass
class IncomingImage:
    """A photo received with the request, held as a local temp file."""
    filename: str
    temp_path: Path
    content_type: Optional[str] = None

    def read_bytes(self) -> bytes:
        return Path(self.temp_path).read_bytes()


@dataclass(frozen=True)
class ImageDuplicate:
    photo_index: int
    issue_id: Any
    url: str
    classification: str
    similarity: int


@dataclass
class UploadedPhoto:
    index: int
    stored: StoredObject
    fingerprint: Fingerprint


@dataclass
class IngestionResult:
    issue: Any
    image_duplicates: List[ImageDuplicate] = field(default_factory=list)
    quality_warnings: List[str] = field(default_factory=list)
    unindexed_photos: List[int] = field(default_factory=list)


@dataclass
class DuplicateFound:
    """Short-circuit outcome: a matching issue already exists. Not an error."""
    issue: Any
    score: float


class CompensationLog:
    """Stack of named undo actions, replayed newest first."""

    def __init__(self):
        self._actions: List[Tuple[str, Callable[[], Any]]] = []
        self.failures: List[Tuple[str, BaseException]] = []

    def push(self, name: str, undo: Callable[[], Any]) -> None:
        self._actions.append((name, undo))

    def __len__(self) -> int:
        return len(self._actions)

    def replay(self) -> List[str]:
        """Run every undo in reverse order; failures are logged and collected, never raised."""
        done = []
        while self._actions:
            name, undo = self._actions.pop()
            try:
                undo()
                done.append(name)
                logger.info(f"Compensated: {name}")
            except Exception as e:
                self.failures.append((name, e))
                logger.exception(f"Compensation failed ({name}); reconcile out-of-band")
        return done


class IngestionAttempt:
    """Mutable state of one ingest() call."""

    def __init__(self):
        self.state = IngestionState.INIT
        self.history: List[Tuple[IngestionState, Optional[int]]] = [(IngestionState.INIT, None)]
        self.compensations = CompensationLog()
        self.uploads: List[UploadedPhoto] = []
        self.image_duplicates: List[ImageDuplicate] = []
        self.quality_warnings: List[str] = []
        self.issue_id = None

    def transition(self, state: IngestionState, photo_index: Optional[int] = None) -> None:
        self.state = state
        self.history.append((state, photo_index))
        suffix = f" (photo {photo_index + 1})" if photo_index is not None else ""
        logger.debug(f"Ingestion {self.issue_id or '-'} -> {state.value}{suffix}")


class IssueIngestionService:
    _locks_guard = threading.Lock()
    _category_locks: Dict[str, threading.Lock] = {}

    def __init__(
        self,
        store,
        storage: ObjectStorage,
        config: Optional[IngestionConfig] = None,
        event_bus: Callable[[str, Dict[str, Any]], None] = publish,
    ):
        self.store = store
        self.storage = storage
        self.config = config or IngestionConfig()
        self.event_bus = event_bus
        self.text_scorer = TextDuplicateScorer(
            store,
            window_days=self.config.text_window_days,
            threshold=self.config.text_duplicate_threshold,
        )
        self.last_attempt: Optional[IngestionAttempt] = None

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def ingest(
        self,
        draft: IssueDraft,
        images: Sequence[IncomingImage] = (),
    ) -> Union[IngestionResult, DuplicateFound]:
        attempt = IngestionAttempt()
        self.last_attempt = attempt
        images = list(images or ())
        logger.info(f"Creating new issue: category={draft.category!r}, photos={len(images)}")

        try:
            self._validate(draft)

            with self._text_check_lock(draft.category):
                duplicate = self._check_text_duplicates(draft, attempt)
                if duplicate is not None:
                    return duplicate
                issue = self._create_record(draft, attempt)

            try:
                for index, image in enumerate(images):
                    self._process_image(issue, index, image, attempt)
                issue = self._commit_photos(issue, attempt)
            except Exception as error:
                self._abort(attempt, error)
                raise

            unindexed = self._store_fingerprints(issue, attempt)
            self._publish(issue)
            attempt.transition(IngestionState.DONE)
            logger.info(f"Issue creation completed: {issue.id}")

            return IngestionResult(
                issue=issue,
                image_duplicates=list(attempt.image_duplicates),
                quality_warnings=list(attempt.quality_warnings),
                unindexed_photos=unindexed,
            )
        finally:
            self._discard_temp_files(images)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _validate(self, draft: IssueDraft) -> None:
        missing = [
            name for name in ("title", "description", "category", "latitude", "longitude")
            if _is_blank(getattr(draft, name))
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)

        draft.category = draft.category.strip().upper()
        if draft.category not in ISSUE_CATEGORIES:
            raise ValidationError(f"Invalid category: {draft.category}", ["category"])

        try:
            draft.latitude = float(draft.latitude)
            draft.longitude = float(draft.longitude)
        except (TypeError, ValueError):
            raise ValidationError("Coordinates must be numeric", ["latitude", "longitude"])
        if not (-90 <= draft.latitude <= 90 and -180 <= draft.longitude <= 180):
            raise ValidationError("Coordinates out of range", ["latitude", "longitude"])

    @contextmanager
    def _text_check_lock(self, category: str):
        if not self.config.serialize_text_check:
            yield
            return
        with self._locks_guard:
            lock = self._category_locks.setdefault(category, threading.Lock())
        with lock:
            yield

    def _check_text_duplicates(self, draft: IssueDraft, attempt: IngestionAttempt) -> Optional[DuplicateFound]:
        candidates = self.text_scorer.score(draft.title, draft.description, draft.category)
        attempt.transition(IngestionState.TEXT_CHECKED)
        if not candidates:
            return None
        best = candidates[0]
        logger.warning(f"Text duplicate detected: issue {best.issue.id} (score {best.score:.2f})")
        return DuplicateFound(issue=best.issue, score=best.score)

    def _create_record(self, draft: IssueDraft, attempt: IngestionAttempt):
        issue = self.store.create_issue({
            "title": draft.title.strip(),
            "description": draft.description.strip(),
            "category": draft.category,
            "priority": (draft.priority or "MEDIUM").upper(),
            "latitude": draft.latitude,
            "longitude": draft.longitude,
            "address": draft.address,
            "reported_by": draft.reported_by,
            "city": draft.city,
            "photos": [],
        })
        issue_id = issue.id
        attempt.issue_id = issue_id
        # replayed in reverse: stored objects first, then fingerprint rows, then the issue
        attempt.compensations.push(f"delete issue {issue_id}", lambda: self.store.delete_issue(issue_id))
        attempt.compensations.push(f"delete fingerprints of {issue_id}", lambda: self.store.delete_fingerprints(issue_id))
        attempt.transition(IngestionState.RECORD_CREATED)
        return issue

    def _process_image(self, issue, index: int, image: IncomingImage, attempt: IngestionAttempt) -> None:
        logger.info(f"Processing photo {index + 1}: {image.filename}")
        try:
            data = image.read_bytes()
        except OSError as e:
            raise DecodeError(f"Could not read photo {index + 1}: {e}") from e

        metadata = read_metadata(data)
        report = check_quality(metadata, self.config.max_image_bytes, self.config.allowed_formats)
        if not report.ok:
            raise QualityError(report.issues, photo_index=index)
        for warning in report.warnings:
            logger.warning(f"Photo {index + 1}: {warning}")
            attempt.quality_warnings.append(f"Photo {index + 1}: {warning}")
        attempt.transition(IngestionState.VALIDATED, index)

        fp = fingerprint(data)
        attempt.transition(IngestionState.FINGERPRINTED, index)

        self._record_similar(fp, index, attempt)

        stored = self._upload(data, issue.id, index)
        storage_id = stored.storage_id
        attempt.compensations.push(f"delete object {storage_id}", lambda: self.storage.delete(storage_id))
        attempt.uploads.append(UploadedPhoto(index=index, stored=stored, fingerprint=fp))
        attempt.transition(IngestionState.UPLOADED, index)

    def _record_similar(self, fp: Fingerprint, index: int, attempt: IngestionAttempt) -> None:
        """Advisory only: any failure here is logged and the photo proceeds."""
        try:
            matches = find_similar(fp, self.store.fingerprint_index(), self.config.similarity_threshold)
        except Exception:
            logger.exception(f"Duplicate image check failed for photo {index + 1}")
            self._reset_store()
            return

        if not matches:
            logger.info(f"No duplicate images found for photo {index + 1}")
            return

        best = matches[0]
        logger.warning(
            f"Similar image found for photo {index + 1}: "
            f"{best.similarity}% {best.classification} match with issue {best.fingerprint.issue_id}"
        )
        attempt.image_duplicates.append(ImageDuplicate(
            photo_index=index,
            issue_id=best.fingerprint.issue_id,
            url=best.fingerprint.storage_url,
            classification=best.classification,
            similarity=best.similarity,
        ))

    def _upload(self, data: bytes, issue_id, index: int) -> StoredObject:
        try:
            return self.storage.put(data, folder=f"issues/{issue_id}", name=f"photo_{index}")
        except UploadError:
            raise
        except Exception as e:
            raise UploadError(f"Failed to upload image {index + 1}: {e}") from e

    def _commit_photos(self, issue, attempt: IngestionAttempt):
        urls = [u.stored.url for u in attempt.uploads]
        issue = self.store.commit_photos(issue.id, urls)
        attempt.transition(IngestionState.PHOTOS_COMMITTED)
        logger.info(f"Issue {issue.id} photos committed: {len(urls)}")
        return issue

    def _abort(self, attempt: IngestionAttempt, error: BaseException) -> None:
        attempt.transition(IngestionState.ABORTED)
        logger.error(f"Issue creation failed ({type(error).__name__}: {error}); rolling back {len(attempt.compensations)} action(s)")
        self._reset_store()
        attempt.compensations.replay()
        if attempt.compensations.failures:
            logger.error(
                f"Rollback of issue {attempt.issue_id} incomplete: "
                f"{', '.join(name for name, _ in attempt.compensations.failures)}"
            )

    def _reset_store(self) -> None:
        try:
            self.store.reset()
        except Exception:
            logger.exception("Failed to reset the issue store session")

    def _store_fingerprints(self, issue, attempt: IngestionAttempt) -> List[int]:
        """Best-effort: a failed row is skipped, the committed issue stands."""
        unindexed = []
        for upload in attempt.uploads:
            fp, stored = upload.fingerprint, upload.stored
            try:
                self.store.create_fingerprint({
                    "issue_id": issue.id,
                    "average_hash": fp.average_hash,
                    "difference_hash": fp.difference_hash,
                    "exact_digest": fp.exact_digest,
                    "storage_url": stored.url,
                    "storage_id": stored.storage_id,
                    "file_size": stored.size,
                    "width": stored.width,
                    "height": stored.height,
                    "format": stored.format,
                })
            except Exception as e:
                unindexed.append(upload.index)
                message = f"Error saving fingerprint for photo {upload.index + 1} of issue {issue.id}: {e}"
                logger.warning(message)
                warnings.warn(message, PersistenceWarning, stacklevel=2)
        attempt.transition(IngestionState.FINGERPRINTS_STORED)
        return unindexed

    def _publish(self, issue) -> None:
        try:
            self.event_bus(ISSUE_CREATED, {
                "issue_id": str(issue.id),
                "category": issue.category,
                "photo_count": len(issue.photos or []),
            })
        except Exception:
            logger.exception(f"Failed to publish {ISSUE_CREATED} for {issue.id}")

    @staticmethod
    def _discard_temp_files(images: Iterable[IncomingImage]) -> None:
        for image in images:
            try:
                Path(image.temp_path).unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Error deleting temp file {image.temp_path}: {e}")
