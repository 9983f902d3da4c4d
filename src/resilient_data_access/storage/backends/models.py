# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Table definitions for the structured storage tier.

Records from every logical store share one table keyed by (store, key).
Declared secondary indexes are materialized as rows of ``record_indexes``
so that index lookups are a single indexed SELECT.
"""

from sqlalchemy import Float, Index, Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Declarative base for storage tables."""

    pass


class StoredRecordDB(Base):
    """One persisted record, serialized as JSON."""

    __tablename__ = "records"

    store_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    record_key: Mapped[str] = mapped_column(String(512), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[float] = mapped_column(Float, nullable=False)

    def __repr__(self) -> str:
        return f"<StoredRecord(store={self.store_name}, key={self.record_key})>"


class RecordIndexDB(Base):
    """Value of one declared index for one record (canonical JSON)."""

    __tablename__ = "record_indexes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store_name: Mapped[str] = mapped_column(String(255), nullable=False)
    index_name: Mapped[str] = mapped_column(String(255), nullable=False)
    index_value: Mapped[str] = mapped_column(Text, nullable=False)
    record_key: Mapped[str] = mapped_column(String(512), nullable=False)

    __table_args__ = (
        Index("idx_store_index_value", "store_name", "index_name", "index_value"),
        Index("idx_store_record", "store_name", "record_key"),
    )


class SchemaMetaDB(Base):
    """Persisted schema version, one row per database."""

    __tablename__ = "schema_meta"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)


__all__ = ["Base", "RecordIndexDB", "SchemaMetaDB", "StoredRecordDB"]
