"""
Base service class with common CRUD patterns
"""
import logging
from typing import Type, TypeVar, Optional, Any, Dict, Generic
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

T = TypeVar('T')

logger = logging.getLogger(__name__)


class BaseService(Generic[T]):
    """Base service class with common CRUD operations"""

    def __init__(self, db: Session, model_class: Type[T]):
        self.db = db
        self.model_class = model_class

    def get_by_id(self, obj_id: Any) -> Optional[T]:
        """Get object by ID"""
        return self.db.query(self.model_class).filter(
            self.model_class.id == obj_id
        ).first()

    def get_by_id_or_404(self, obj_id: Any) -> T:
        """Get object by ID or raise 404"""
        obj = self.get_by_id(obj_id)
        if not obj:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{self.model_class.__name__} not found"
            )
        return obj

    def commit(self) -> None:
        """Commit the session, rolling back before re-raising on failure"""
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"Commit failed for {self.model_class.__name__}")
            raise

    def create(self, data: Dict[str, Any]) -> T:
        """Create new object"""
        obj = self.model_class(**data)
        self.db.add(obj)
        self.commit()
        self.db.refresh(obj)
        return obj

    def update(self, obj_id: Any, data: Dict[str, Any]) -> Optional[T]:
        """Update object by ID"""
        obj = self.get_by_id(obj_id)
        if not obj:
            return None

        for key, value in data.items():
            if hasattr(obj, key):
                setattr(obj, key, value)

        self.commit()
        self.db.refresh(obj)
        return obj

    def delete(self, obj_id: Any) -> bool:
        """Delete object by ID"""
        obj = self.get_by_id(obj_id)
        if not obj:
            return False

        self.db.delete(obj)
        self.commit()
        return True
