"""Repository classes for database operations."""

import asyncio
import json
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from brand_agent.core.schema import StoredDocument
from brand_agent.db.engine import create_db_engine, create_session_factory, init_db
from brand_agent.db.models import DocumentDB


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class DocumentRepository:
    """Repository for stored document CRUD operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        collection: str,
        properties: dict[str, Any],
        children: list[dict[str, Any]] | None = None,
    ) -> StoredDocument:
        """
        Create a new document.

        Args:
            collection: Collection the document belongs to.
            properties: Plain property values.
            children: Optional body blocks.

        Returns:
            The created StoredDocument.
        """
        db_doc = DocumentDB(
            collection=collection,
            properties_json=json.dumps(properties, default=str),
            children_json=json.dumps(children or [], default=str),
        )
        self.session.add(db_doc)
        self.session.flush()
        return self._to_domain(db_doc)

    def get_by_id(self, document_id: str) -> StoredDocument | None:
        """Get a document by ID, archived or not."""
        stmt = select(DocumentDB).where(DocumentDB.id == document_id)
        db_doc = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_doc) if db_doc else None

    def update_properties(self, document_id: str, properties: dict[str, Any]) -> StoredDocument:
        """
        Merge properties into an existing document.

        Raises:
            ValueError: If the document does not exist.
        """
        db_doc = self._get_db(document_id)
        merged = json.loads(db_doc.properties_json)
        merged.update(properties)
        db_doc.properties_json = json.dumps(merged, default=str)
        db_doc.updated_at = _utc_now()
        self.session.flush()
        return self._to_domain(db_doc)

    def archive(self, document_id: str) -> StoredDocument:
        """Mark a document as archived."""
        db_doc = self._get_db(document_id)
        db_doc.archived = True
        db_doc.updated_at = _utc_now()
        self.session.flush()
        return self._to_domain(db_doc)

    def find(self, collection: str, filters: dict[str, Any] | None = None) -> list[StoredDocument]:
        """
        List non-archived documents in a collection matching every filter.

        Filters compare property values for equality.
        """
        stmt = (
            select(DocumentDB)
            .where(DocumentDB.collection == collection)
            .where(DocumentDB.archived == False)  # noqa: E712
            .order_by(DocumentDB.created_at)
        )
        documents = [self._to_domain(d) for d in self.session.execute(stmt).scalars().all()]
        if not filters:
            return documents
        return [
            doc
            for doc in documents
            if all(doc.properties.get(name) == value for name, value in filters.items())
        ]

    def _get_db(self, document_id: str) -> DocumentDB:
        stmt = select(DocumentDB).where(DocumentDB.id == document_id)
        db_doc = self.session.execute(stmt).scalar_one_or_none()
        if db_doc is None:
            raise ValueError(f"Document with id {document_id} not found")
        return db_doc

    def _to_domain(self, db_doc: DocumentDB) -> StoredDocument:
        """Convert database model to domain model."""
        return StoredDocument(
            id=db_doc.id,
            collection=db_doc.collection,
            properties=json.loads(db_doc.properties_json),
            children=json.loads(db_doc.children_json),
            archived=db_doc.archived,
        )


class SqlDocumentStore:
    """
    Document store backed by the local SQLite database.

    Each operation runs in its own session, on a worker thread, and commits
    on success. A store built by ``open`` owns its engine and disposes of
    it in ``aclose``.
    """

    def __init__(self, session_factory: Callable[[], Session], engine: Engine | None = None):
        self.session_factory = session_factory
        self.engine = engine

    @classmethod
    def open(cls, db_path: Path | str | None = None) -> "SqlDocumentStore":
        """Create the tables in ``db_path`` and return a store that owns its engine."""
        engine = create_db_engine(db_path)
        init_db(engine)
        return cls(create_session_factory(engine), engine=engine)

    async def aclose(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    async def _call(self, operation: Callable[[DocumentRepository], Any]) -> Any:
        return await asyncio.to_thread(self._run, operation)

    def _run(self, operation: Callable[[DocumentRepository], Any]) -> Any:
        session = self.session_factory()
        try:
            result = operation(DocumentRepository(session))
            session.commit()
            return result
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    async def create(
        self,
        collection: str,
        properties: dict[str, Any],
        children: list[dict[str, Any]] | None = None,
    ) -> str:
        return (await self._call(lambda repo: repo.create(collection, properties, children))).id

    async def patch(self, document_id: str, properties: dict[str, Any]) -> None:
        await self._call(lambda repo: repo.update_properties(document_id, properties))

    async def query(self, collection: str, filters: dict[str, Any]) -> list[StoredDocument]:
        return await self._call(lambda repo: repo.find(collection, filters))

    async def archive(self, document_id: str) -> None:
        await self._call(lambda repo: repo.archive(document_id))

    async def get(self, document_id: str) -> StoredDocument | None:
        return await self._call(lambda repo: repo.get_by_id(document_id))
