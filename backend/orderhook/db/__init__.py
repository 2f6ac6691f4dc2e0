"""Database package: shared engine and session factory."""

from orderhook.db.base import Base, close_db, get_session_factory, init_db, insert_for

__all__ = [
    "Base",
    "close_db",
    "get_session_factory",
    "init_db",
    "insert_for",
]
