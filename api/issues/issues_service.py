import uuid
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from api.issues.issues_model import Issue, PHOTOS_COMMITTED
from api.issues.image_fingerprints_model import ImageFingerprint
from services.base_service import BaseService

logger = logging.getLogger(__name__)


class IssueStore(BaseService[Issue]):
    """
    Document-store side of issue ingestion: the issue row and the
    fingerprint rows that feed future duplicate checks.
    """

    def __init__(self, db: Session):
        super().__init__(db, Issue)

    def create_issue(self, data: Dict[str, Any]) -> Issue:
        payload = dict(data)
        payload.setdefault("photos", [])
        issue = self.create(payload)
        logger.info(f"Issue created in DB: {issue.id}")
        return issue

    def get_issue(self, issue_id: uuid.UUID) -> Optional[Issue]:
        return self.get_by_id(issue_id)

    def commit_photos(self, issue_id: uuid.UUID, photos: List[str]) -> Issue:
        """Attach the ordered photo urls and mark the issue's photos committed."""
        issue = self.update(issue_id, {"photos": list(photos), "photo_state": PHOTOS_COMMITTED})
        if issue is None:
            raise LookupError(f"Issue {issue_id} disappeared before photos were committed")
        return issue

    def reset(self) -> None:
        """Discard a failed transaction so the session can be used again."""
        self.db.rollback()

    def delete_issue(self, issue_id: uuid.UUID) -> bool:
        return self.delete(issue_id)

    def create_fingerprint(self, data: Dict[str, Any]) -> ImageFingerprint:
        row = ImageFingerprint(**data)
        self.db.add(row)
        self.commit()
        self.db.refresh(row)
        return row

    def delete_fingerprints(self, issue_id: uuid.UUID) -> int:
        deleted = (
            self.db.query(ImageFingerprint)
            .filter(ImageFingerprint.issue_id == issue_id)
            .delete(synchronize_session=False)
        )
        self.commit()
        return deleted

    def fingerprint_index(self) -> List[ImageFingerprint]:
        """Snapshot of every fingerprint carrying at least one perceptual hash."""
        return (
            self.db.query(ImageFingerprint)
            .filter(or_(
                ImageFingerprint.average_hash.isnot(None),
                ImageFingerprint.difference_hash.isnot(None),
            ))
            .all()
        )

    def recent_issues(self, category: str, since: datetime) -> List[Issue]:
        """Same-category issues created at or after `since`, most recent first."""
        return (
            self.db.query(Issue)
            .filter(Issue.category == category, Issue.created_at >= since)
            .order_by(desc(Issue.created_at), desc(Issue.id))
            .all()
        )
