"""Database engine, sessions and ORM models."""

from .connection import close_database, create_tables, get_session, init_engine


__all__ = ["close_database", "create_tables", "get_session", "init_engine"]
