"""Database configuration and utilities."""
from .session import SessionLocal, create_tables, drop_tables, get_db, unit_of_work

__all__ = ["SessionLocal", "create_tables", "drop_tables", "get_db", "unit_of_work"]
