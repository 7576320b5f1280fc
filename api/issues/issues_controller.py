import uuid
import logging
from typing import List
from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from api.issues.issues_schema import (
    DuplicateIssueResponse,
    ImageDuplicateWarning,
    IssueCreatedResponse,
    IssueResponse,
)
from api.issues.issues_service import IssueStore
from config.ingestion_config import IngestionConfig
from config.settings import settings
from helpers.storage_service import ObjectStorage
from services.ingestion_errors import DecodeError, QualityError, UploadError, ValidationError
from services.ingestion_service import (
    DuplicateFound,
    IncomingImage,
    IssueDraft,
    IssueIngestionService,
)

logger = logging.getLogger(__name__)


def create_issue_controller(
    draft: IssueDraft,
    images: List[IncomingImage],
    db: Session,
    storage: ObjectStorage,
) -> JSONResponse:
    """
    Run the ingestion pipeline and translate its outcome into an HTTP response:
    201 with the new issue, or 200 pointing at the existing duplicate.
    """
    service = IssueIngestionService(
        store=IssueStore(db),
        storage=storage,
        config=IngestionConfig.from_settings(settings),
    )
    try:
        outcome = service.ingest(draft, images)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except QualityError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "issues": e.issues, "photo_index": e.photo_index},
        )
    except DecodeError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except UploadError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except Exception:
        logger.exception("Issue creation failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create issue")

    if isinstance(outcome, DuplicateFound):
        body = DuplicateIssueResponse(
            duplicate_issue=IssueResponse.model_validate(outcome.issue),
            score=round(outcome.score, 4),
        )
        return JSONResponse(status_code=status.HTTP_200_OK, content=jsonable_encoder(body))

    duplicates = [
        ImageDuplicateWarning(
            photo_index=d.photo_index,
            issue_id=d.issue_id,
            url=d.url,
            classification=d.classification,
            similarity=d.similarity,
        )
        for d in outcome.image_duplicates
    ]
    body = IssueCreatedResponse(
        issue=IssueResponse.model_validate(outcome.issue),
        image_duplicates=duplicates or None,
        image_quality_flags=outcome.quality_warnings,
    )
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=jsonable_encoder(body))


def get_issue_controller(issue_id: uuid.UUID, db: Session) -> IssueResponse:
    issue = IssueStore(db).get_by_id_or_404(issue_id)
    return IssueResponse.model_validate(issue)
