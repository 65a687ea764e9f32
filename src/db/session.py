import logging
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from src.db.database import SessionLocal
from src.db.repository import AssessmentRepository

logger = logging.getLogger(__name__)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency to provide a database session.

    Handles session creation, rollback on error, and closing.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_repository(db: Session = Depends(get_db)) -> AssessmentRepository:
    return AssessmentRepository(db)
