"""Database helpers and SQLModel metadata setup."""
from .base import check_connection, dispose_engine, get_engine, get_session, init_db

__all__ = ["check_connection", "dispose_engine", "get_engine", "get_session", "init_db"]
