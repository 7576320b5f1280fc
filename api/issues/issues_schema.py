from pydantic import BaseModel, ConfigDict, Field, validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from api.issues.issues_model import ISSUE_CATEGORIES, ISSUE_PRIORITIES


class IssueBase(BaseModel):
    title: str
    description: str
    category: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: Optional[str] = None
    priority: str = "MEDIUM"

    @validator("category")
    def validate_category(cls, v):
        v = v.strip().upper()
        if v not in ISSUE_CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(ISSUE_CATEGORIES)}")
        return v

    @validator("priority")
    def validate_priority(cls, v):
        v = (v or "MEDIUM").strip().upper()
        if v not in ISSUE_PRIORITIES:
            raise ValueError(f"priority must be one of {', '.join(ISSUE_PRIORITIES)}")
        return v


class IssueResponse(IssueBase):
    id: UUID
    photos: List[str] = []
    photo_state: str
    status: str
    reported_by: Optional[int] = None
    city: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ImageDuplicateWarning(BaseModel):
    """Advisory near/exact duplicate found for one submitted photo."""
    photo_index: int
    issue_id: UUID
    url: str
    classification: str       # exact | near
    similarity: int


class IssueCreatedResponse(BaseModel):
    issue: IssueResponse
    image_duplicates: Optional[List[ImageDuplicateWarning]] = None
    image_quality_flags: List[str] = []


class DuplicateIssueResponse(BaseModel):
    is_duplicate: bool = True
    duplicate_issue: IssueResponse
    score: float
    message: str = "Similar issue already exists"
