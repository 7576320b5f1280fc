import uuid
import shutil
import logging
from pathlib import Path
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from config.database import get_db, UPLOAD_DIR, UPLOAD_TMP_DIR
from config.settings import settings
from middlewares.auth_middleware import auth_middleware
from api.issues.issues_controller import create_issue_controller, get_issue_controller
from api.issues.issues_schema import IssueCreatedResponse, IssueResponse
from helpers.storage_service import LocalObjectStorage
from services.ingestion_service import IncomingImage, IssueDraft

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/issues", tags=["Issues"])

ALLOWED_MIMES = ("image/jpeg", "image/png", "image/webp", "image/gif")


def get_object_storage() -> LocalObjectStorage:
    return LocalObjectStorage(UPLOAD_DIR, settings.UPLOAD_URL)


def save_temp_upload(uploaded_file: UploadFile) -> Path:
    """
    Spool an incoming photo to the temp directory and return its path.
    """
    UPLOAD_TMP_DIR.mkdir(parents=True, exist_ok=True)
    ext = Path(uploaded_file.filename or "").suffix.lower()
    dest = UPLOAD_TMP_DIR / f"{uuid.uuid4().hex}{ext}"
    with dest.open("wb") as buffer:
        shutil.copyfileobj(uploaded_file.file, buffer)
    return dest


def _reporter_id(current_user: dict) -> Optional[int]:
    try:
        return int(current_user.get("id"))
    except (TypeError, ValueError):
        return None


@router.post(
    "/",
    response_model=IssueCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report an issue with photos (duplicate checked)"
)
def create_issue_endpoint(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    address: Optional[str] = Form(None),
    priority: Optional[str] = Form("MEDIUM"),
    photos: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_object_storage),
    current_user: dict = Depends(auth_middleware),
):
    photos = photos or []
    if len(photos) > settings.MAX_PHOTOS_PER_ISSUE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.MAX_PHOTOS_PER_ISSUE} photos per issue"
        )
    for photo in photos:
        if photo.content_type not in ALLOWED_MIMES:
            raise HTTPException(
                status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                detail="Invalid file type. Only JPEG, PNG, WebP, and GIF allowed."
            )

    images: List[IncomingImage] = []
    try:
        for photo in photos:
            images.append(IncomingImage(
                filename=photo.filename or "photo",
                temp_path=save_temp_upload(photo),
                content_type=photo.content_type,
            ))
    except OSError as e:
        for image in images:
            image.temp_path.unlink(missing_ok=True)
        logger.error(f"Failed to spool uploads: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to receive photos")

    draft = IssueDraft(
        title=title,
        description=description,
        category=category,
        latitude=latitude,
        longitude=longitude,
        address=address,
        priority=priority,
        reported_by=_reporter_id(current_user),
        city=current_user.get("city"),
    )
    return create_issue_controller(draft, images, db, storage)


@router.get("/{issue_id}", response_model=IssueResponse, summary="Get a single issue")
def get_issue_endpoint(
    issue_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    return get_issue_controller(issue_id, db)
