"""Database session management utilities.

Sessions are produced by the session factory of the process-wide
Environment, so the same helpers serve PostgreSQL and in-memory SQLite.
"""

from collections.abc import Generator

from sqlalchemy.orm import Session

from src.services.environment import get_environment


def get_session() -> Session:
    """Create a new database session.

    Returns:
        Session: A new SQLAlchemy session from the active environment.
    """
    return get_environment().session_factory()


def get_db() -> Generator[Session, None, None]:
    """Yield a database session with automatic cleanup.

    Yields:
        Session: A SQLAlchemy session for database operations.

    Example:
        for db in get_db():
            reports = list_reports(db, owner_id)
    """
    session = get_session()
    try:
        yield session
    finally:
        session.close()
