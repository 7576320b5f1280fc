"""
Tests for IssueStore against an in-memory database.
"""
import uuid
from datetime import datetime, timedelta

import pytest

from api.issues.image_fingerprints_model import ImageFingerprint
from api.issues.issues_model import PHOTOS_COMMITTED, PHOTOS_PENDING

A_HASH = "01" * 32
D_HASH = "0011" * 16


def issue_data(**overrides):
    values = dict(
        title="Water main burst",
        description="Water flooding the street since morning.",
        category="UTILITIES",
        latitude=12.9,
        longitude=77.6,
    )
    values.update(overrides)
    return values


def fingerprint_data(issue_id, **overrides):
    values = dict(
        issue_id=issue_id,
        average_hash=A_HASH,
        difference_hash=D_HASH,
        exact_digest="d41d8cd98f00b204e9800998ecf8427e",
        storage_url="/uploads/issues/x/photo_0.png",
        storage_id="issues/x/photo_0.png",
    )
    values.update(overrides)
    return values


class TestIssues:
    def test_create_defaults(self, store) -> None:
        issue = store.create_issue(issue_data())

        assert isinstance(issue.id, uuid.UUID)
        assert issue.photos == []
        assert issue.photo_state == PHOTOS_PENDING
        assert issue.status == "REPORTED"
        assert issue.created_at is not None

    def test_commit_photos_keeps_order(self, store) -> None:
        issue = store.create_issue(issue_data())

        committed = store.commit_photos(issue.id, ["/uploads/b.png", "/uploads/a.png"])

        assert committed.photos == ["/uploads/b.png", "/uploads/a.png"]
        assert committed.photo_state == PHOTOS_COMMITTED

    def test_commit_photos_on_missing_issue(self, store) -> None:
        with pytest.raises(LookupError):
            store.commit_photos(uuid.uuid4(), [])

    def test_delete_issue(self, store) -> None:
        issue = store.create_issue(issue_data())

        assert store.delete_issue(issue.id) is True
        assert store.get_issue(issue.id) is None
        assert store.delete_issue(issue.id) is False


class TestRecentIssues:
    def test_window_category_and_order(self, store) -> None:
        now = datetime.utcnow()
        newest = store.create_issue(issue_data(created_at=now - timedelta(days=1)))
        older = store.create_issue(issue_data(created_at=now - timedelta(days=3)))
        store.create_issue(issue_data(created_at=now - timedelta(days=10)))
        store.create_issue(issue_data(category="PARKS", created_at=now - timedelta(days=1)))

        found = store.recent_issues("UTILITIES", now - timedelta(days=7))

        assert [i.id for i in found] == [newest.id, older.id]


class TestFingerprints:
    def test_create_and_index(self, store) -> None:
        issue = store.create_issue(issue_data())
        row = store.create_fingerprint(fingerprint_data(issue.id))

        assert store.fingerprint_index() == [row]
        assert row.issue.id == issue.id

    def test_single_hash_is_indexed(self, store) -> None:
        issue = store.create_issue(issue_data())
        store.create_fingerprint(fingerprint_data(issue.id, average_hash=None))

        rows = store.fingerprint_index()

        assert len(rows) == 1
        assert rows[0].average_hash is None

    def test_hashless_row_is_rejected(self, store, db_session) -> None:
        issue = store.create_issue(issue_data())

        with pytest.raises(ValueError):
            store.create_fingerprint(fingerprint_data(issue.id, average_hash=None, difference_hash=None))

        assert db_session.query(ImageFingerprint).count() == 0
        # session is usable after the rollback
        assert store.get_issue(issue.id) is not None

    def test_malformed_hash_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            ImageFingerprint(average_hash="0123", storage_url="u", storage_id="s")

    def test_delete_fingerprints(self, store, db_session) -> None:
        keep = store.create_issue(issue_data())
        drop = store.create_issue(issue_data())
        store.create_fingerprint(fingerprint_data(keep.id))
        store.create_fingerprint(fingerprint_data(drop.id))
        store.create_fingerprint(fingerprint_data(drop.id, storage_id="issues/x/photo_1.png"))

        assert store.delete_fingerprints(drop.id) == 2
        assert [r.issue_id for r in db_session.query(ImageFingerprint).all()] == [keep.id]

    def test_deleting_issue_removes_its_fingerprints(self, store, db_session) -> None:
        issue = store.create_issue(issue_data())
        store.create_fingerprint(fingerprint_data(issue.id))

        store.delete_issue(issue.id)

        assert db_session.query(ImageFingerprint).count() == 0
