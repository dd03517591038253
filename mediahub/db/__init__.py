"""Database module."""

from mediahub.db.database import (
    async_session_maker,
    dispose_db,
    engine,
    get_db,
    init_db,
)

__all__ = [
    "async_session_maker",
    "dispose_db",
    "engine",
    "get_db",
    "init_db",
]
