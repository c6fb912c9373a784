"""Database layer for Brand Agent."""

from brand_agent.db.engine import create_db_engine, create_session_factory, init_db
from brand_agent.db.models import Base, DocumentDB
from brand_agent.db.repositories import DocumentRepository, SqlDocumentStore

__all__ = [
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "Base",
    "DocumentDB",
    "DocumentRepository",
    "SqlDocumentStore",
]
