"""
SQLAlchemy 2.x ORM models for labelstore.

Models map to tables created by the SQL files in `labelstore/db/sql`;
they are used to build statements, not to create the schema.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Identity, String, UniqueConstraint, Uuid, func
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from labelstore.domain.label import LABEL_NAME_MAX_LENGTH


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class LabelRecord(Base):
    """
    Named, uniquely identified tag.

    id is storage-internal; label_id is the public identifier. Uniqueness of
    label_id is enforced by uq_labels_label_id.
    """

    __tablename__ = "labels"
    __table_args__ = (UniqueConstraint("label_id", name="uq_labels_label_id"),)

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    label_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    label_name: Mapped[str] = mapped_column(String(LABEL_NAME_MAX_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<LabelRecord(id={self.id}, label_id={self.label_id}, label_name={self.label_name})>"
