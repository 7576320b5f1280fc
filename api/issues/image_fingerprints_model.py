import re
import uuid
from datetime import datetime
from sqlalchemy import CheckConstraint, Column, String, Integer, DateTime, ForeignKey, event
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, validates
from config.database import Base

HASH_PATTERN = re.compile(r"^[01]{64}$")


class ImageFingerprint(Base):
    __tablename__ = 'image_fingerprints'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    # many fingerprints per issue, one per stored photo
    issue_id = Column(
        UUID(as_uuid=True),
        ForeignKey('issues.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    average_hash    = Column(String(64), nullable=True, index=True)
    difference_hash = Column(String(64), nullable=True, index=True)
    exact_digest    = Column(String(32), nullable=True, index=True)   # md5 hex

    storage_url = Column(String, nullable=False)
    storage_id  = Column(String, nullable=False)
    file_size   = Column(Integer, nullable=True)
    width       = Column(Integer, nullable=True)
    height      = Column(Integer, nullable=True)
    format      = Column(String, nullable=True)
    uploaded_at = Column(DateTime, default=datetime.utcnow)

    issue = relationship('Issue', back_populates='fingerprints')

    __table_args__ = (
        CheckConstraint(
            "average_hash IS NOT NULL OR difference_hash IS NOT NULL",
            name="ck_image_fingerprints_has_hash"
        ),
    )

    @validates('average_hash', 'difference_hash')
    def validate_hash(self, key, value):
        if value is not None and not HASH_PATTERN.match(value):
            raise ValueError(f"{key} must be 64 characters of 0/1")
        return value

    def __repr__(self):
        return f"<ImageFingerprint(id={self.id}, issue_id={self.issue_id}, storage_id='{self.storage_id}')>"


@event.listens_for(ImageFingerprint, "before_insert")
def _reject_hashless_fingerprint(mapper, connection, target):
    if not target.average_hash and not target.difference_hash:
        raise ValueError("ImageFingerprint needs at least one perceptual hash")
