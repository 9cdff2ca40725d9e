"""Database session management module.

Provides SQLAlchemy session helpers bound to the active environment.
"""

from .session import get_db, get_session

__all__ = ["get_session", "get_db"]
