"""
Database module.
Contains database connection, models, and repository implementations.
"""

from buildqueue.db.connection import (
    close_db,
    create_session_factory,
    get_async_session,
    get_engine,
    get_session_context,
    init_db,
)
from buildqueue.db.models import Base, QueueEntry

__all__ = [
    "get_async_session",
    "get_session_context",
    "get_engine",
    "create_session_factory",
    "init_db",
    "close_db",
    "QueueEntry",
    "Base",
]
