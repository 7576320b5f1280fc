# config/settings.py

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field, validator
import os
from functools import lru_cache
from pathlib import Path


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "FixMyCity"
    DEBUG: bool = False
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production)$")

    # URLs
    UPLOAD_URL: str = "/uploads"

    # File uploads
    UPLOAD_DIR: str = "uploads"
    UPLOAD_TMP_DIR: str = "tmp/uploads"
    MAX_IMAGE_SIZE: int = Field(default=5 * 1024 * 1024, ge=1024)
    MAX_PHOTOS_PER_ISSUE: int = Field(default=5, ge=1, le=20)
    ALLOWED_IMAGE_FORMATS: str = "jpeg,png,webp,gif"

    # Duplicate detection
    PHASH_THRESHOLD: int = Field(default=10, ge=0, le=64)
    TEXT_DUPLICATE_WINDOW_DAYS: int = Field(default=7, ge=1, le=365)
    TEXT_DUPLICATE_THRESHOLD: float = Field(default=0.75, ge=0.0, le=1.0)
    SERIALIZE_TEXT_CHECK: bool = True

    # CORS
    CORS_ORIGINS: str = ""

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        if not self.CORS_ORIGINS:
            return ["*"] if self.DEBUG else []
        return [s.strip() for s in self.CORS_ORIGINS.split(",") if s.strip()]

    @property
    def allowed_image_formats_list(self) -> List[str]:
        """Parse allowed image formats from comma-separated string"""
        return [fmt.strip().upper() for fmt in self.ALLOWED_IMAGE_FORMATS.split(",") if fmt.strip()]

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = Field(default=20, ge=5, le=100)
    DB_MAX_OVERFLOW: int = Field(default=30, ge=5, le=100)
    DB_POOL_RECYCLE: int = Field(default=3600, ge=300)

    # Security
    SECRET_KEY: str = Field(min_length=8)
    ALGORITHM: str = "HS256"

    # Monitoring
    LOG_LEVEL: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Server
    PORT: Optional[int] = Field(default=8000, ge=1, le=65535)

    @validator('SECRET_KEY')
    def validate_secrets(cls, v):
        """Ensure secrets are strong enough"""
        if len(v) < 8:
            raise ValueError('Secret keys must be at least 8 characters long')
        if len(v) < 32:
            import warnings
            warnings.warn(f"Secret key is only {len(v)} characters. Consider using at least 32 characters for production.", UserWarning)
        return v

    @validator('DATABASE_URL')
    def validate_database_url(cls, v):
        """Validate database URL format"""
        if not v.startswith(('postgresql://', 'postgresql+psycopg2://', 'sqlite://')):
            raise ValueError('Unsupported database URL format')
        return v

    @validator('UPLOAD_TMP_DIR')
    def validate_upload_tmp_dir(cls, v, values):
        """Spooled uploads must not be reachable through the static upload mount"""
        upload_dir = values.get('UPLOAD_DIR')
        if upload_dir:
            public = Path(upload_dir).resolve()
            spool = Path(v).resolve()
            if spool == public or public in spool.parents:
                raise ValueError('UPLOAD_TMP_DIR must be outside UPLOAD_DIR')
        return v

    @validator('CORS_ORIGINS')
    def validate_cors_origins(cls, v):
        """Validate CORS origins in production"""
        environment = os.getenv('ENVIRONMENT', 'development')
        if environment == 'production' and ('*' in v or not v):
            raise ValueError('Wildcard CORS origins not allowed in production')
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
