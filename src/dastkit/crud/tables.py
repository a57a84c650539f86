"""Database table definitions for the local entity store and document history"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class EntityRecord(SQLModel, table=True):
    """A persisted record or block and the type it was created with"""
    __tablename__ = "entities"
    id: str = Field(primary_key=True)
    item_type: str = Field(..., index=True, nullable=False)
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))


class DocumentVersion(SQLModel, table=True):
    """Immutable snapshot of one structured-text field of a record."""
    __tablename__ = "document_versions"
    __table_args__ = (UniqueConstraint("record_id", "field", "version_num", name="uq_docver_record_field_num"),)
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    record_id: str = Field(..., index=True, nullable=False)
    field: str = Field(..., nullable=False, description="Api key of the structured-text field")
    version_num: int = Field(..., nullable=False, description="Monotonically increasing per record field")
    document: str = Field(..., sa_column=Column(Text, nullable=False))
    hash: str = Field(..., sa_column=Column(String(64), nullable=False))
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
