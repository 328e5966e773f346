"""
Database module - PostgreSQL engine, sessions and schema bootstrap.
"""
from app.db.postgres import get_db_session, check_database_connection
from app.db.schema import init_schema

__all__ = [
    "get_db_session",
    "check_database_connection",
    "init_schema"
]
