"""
Database session wiring and service factories.

The engine is created on first use so importing this module never needs a
database driver or a reachable server.
"""

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def get_engine(database_url: Optional[str] = None) -> Engine:
    """Create (once per URL) the database engine."""
    url = database_url or settings.DATABASE_URL
    logger.debug(f"Creating engine for {url.split('@')[-1]}")  # Hide credentials
    return create_engine(
        url,
        pool_pre_ping=settings.DB_POOL_PRE_PING,
        echo=settings.DB_ECHO
    )


@contextmanager
def get_db_session(database_url: Optional[str] = None) -> Iterator[Session]:
    """
    Get a database session scoped to a with-block.

    Usage:
        with get_db_session() as session:
            store = ProjectStore(session)
    """
    SessionLocal = sessionmaker(autocommit=False, autoflush=False,
                                bind=get_engine(database_url))
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
