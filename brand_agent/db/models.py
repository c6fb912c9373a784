"""SQLAlchemy ORM models for the local document store."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def _generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class DocumentDB(Base):
    """
    Database model for stored documents.

    Brand records and brand index entries share this table; ``collection``
    tells them apart. Properties and body blocks are kept as JSON.
    """

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_generate_uuid)
    collection: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)
    archived: Mapped[bool] = mapped_column(Boolean, default=False)
    properties_json: Mapped[str] = mapped_column(Text, default="{}")  # JSON object
    children_json: Mapped[str] = mapped_column(Text, default="[]")  # JSON array

    def __repr__(self) -> str:
        return f"<DocumentDB(id={self.id}, collection={self.collection}, archived={self.archived})>"
