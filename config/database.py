from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from config.settings import settings

DATABASE_URL = settings.DATABASE_URL

if settings.is_sqlite:
    # SQLite ignores pool sizing; FastAPI hands sessions across threads
    engine = create_engine(
        DATABASE_URL,
        echo=settings.DEBUG,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        # Connection pooling settings
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=settings.DB_POOL_RECYCLE,
        # Only echo SQL queries in debug mode
        echo=settings.DEBUG,
        connect_args={
            "options": "-c timezone=utc"
        } if "postgresql" in DATABASE_URL else {}
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# ─── Uploads config ──────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).parent.parent
UPLOAD_DIR = Path(settings.UPLOAD_DIR)
if not UPLOAD_DIR.is_absolute():
    UPLOAD_DIR = PROJECT_ROOT / UPLOAD_DIR
UPLOAD_TMP_DIR = Path(settings.UPLOAD_TMP_DIR)
if not UPLOAD_TMP_DIR.is_absolute():
    UPLOAD_TMP_DIR = PROJECT_ROOT / UPLOAD_TMP_DIR
