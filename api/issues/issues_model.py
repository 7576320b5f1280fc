from sqlalchemy import Column, String, Float, JSON, Integer, DateTime, Index, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from config.database import Base
from api.issues.image_fingerprints_model import ImageFingerprint

ISSUE_CATEGORIES = ("ROADS", "UTILITIES", "PARKS", "TRAFFIC", "SANITATION", "HEALTH", "OTHER")
ISSUE_PRIORITIES = ("LOW", "MEDIUM", "HIGH", "CRITICAL")

PHOTOS_PENDING   = "pending"
PHOTOS_COMMITTED = "committed"


class Issue(Base):
    __tablename__ = "issues"

    id          = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    title       = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    category    = Column(String, nullable=False)
    priority    = Column(String, default="MEDIUM", nullable=False)

    latitude    = Column(Float, nullable=False)
    longitude   = Column(Float, nullable=False)
    address     = Column(String, nullable=True)

    photos      = Column(JSON, nullable=False, default=list)     # ordered storage urls
    photo_state = Column(String, default=PHOTOS_PENDING, nullable=False)
    status      = Column(String, default="REPORTED", nullable=False)

    reported_by = Column(Integer, nullable=True)
    city        = Column(String, nullable=True)

    created_at  = Column(DateTime, default=datetime.utcnow)
    updated_at  = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    fingerprints = relationship(
        ImageFingerprint,
        back_populates='issue',
        cascade='all, delete-orphan'
    )

    __table_args__ = (
        Index("ix_issues_category_created_at", "category", "created_at"),
    )

    def __repr__(self):
        return f"<Issue(id={self.id}, category='{self.category}', photo_state='{self.photo_state}')>"
