"""Database engine and session management."""

from .connection import check_connection, create_db_engine, create_session_factory, init_db

__all__ = ["create_db_engine", "create_session_factory", "init_db", "check_connection"]
