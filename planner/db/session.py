"""MySQL database engine, session factory, transaction scope and dependency injection."""

import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from planner.core.config import settings
from planner.core.exceptions import TransactionFailureError

logger = logging.getLogger("planner")

engine = create_engine(
    settings.DATABASE_URL,
    pool_size=20,
    max_overflow=40,
    pool_timeout=30,
    pool_recycle=1800,
    pool_pre_ping=True,
    echo=settings.DEBUG,
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_DEPTH_KEY = "atomic_depth"


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that provides a DB session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run the block as one unit of work on ``db``.

    The outermost scope commits on success and rolls back on any error.
    Nested scopes join the outer one, so a batch operation can wrap many
    single-event operations and still commit or roll back once.
    """
    depth = db.info.get(_DEPTH_KEY, 0)
    db.info[_DEPTH_KEY] = depth + 1
    try:
        yield db
        if depth == 0:
            db.commit()
    except SQLAlchemyError as exc:
        if depth == 0:
            db.rollback()
            logger.exception("Transaction rolled back after storage failure")
            raise TransactionFailureError("Storage failure, operation rolled back") from exc
        raise
    except Exception:
        if depth == 0:
            db.rollback()
        raise
    finally:
        db.info[_DEPTH_KEY] = depth
