"""API dependencies"""

from typing import Generator

from sqlalchemy.orm import Session

from memetrack.core.db import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Database session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
