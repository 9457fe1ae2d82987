"""
Attribute storage models.

The current value lives on ``attributes``; every value it ever held lives on
``attribute_snapshots`` ordered by ``position``. The unique
``(subject_id, attribute_id, position)`` constraint stops two writers from
claiming the same slot in the history.
"""
from datetime import datetime
from typing import Any
from sqlalchemy import (
    String, ForeignKey, ForeignKeyConstraint, UniqueConstraint, JSON, DateTime, Integer
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin, generate_ulid


class AttributeRecord(Base, TimestampMixin):
    """Current value of one attribute of one user."""
    __tablename__ = "attributes"
    
    subject_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    attribute_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)
    
    history: Mapped[list["AttributeSnapshotRecord"]] = relationship(
        "AttributeSnapshotRecord",
        back_populates="attribute",
        cascade="all, delete-orphan",
        order_by="AttributeSnapshotRecord.position",
        lazy="selectin"
    )
    
    def __repr__(self) -> str:
        return f"<AttributeRecord(subject_id={self.subject_id}, attribute_id={self.attribute_id!r})>"


class AttributeSnapshotRecord(Base):
    """One entry of an attribute's history."""
    __tablename__ = "attribute_snapshots"
    __table_args__ = (
        ForeignKeyConstraint(
            ["subject_id", "attribute_id"],
            ["attributes.subject_id", "attributes.attribute_id"],
            ondelete="CASCADE",
        ),
        UniqueConstraint("subject_id", "attribute_id", "position", name="uq_attribute_snapshot_position"),
    )
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    subject_id: Mapped[str] = mapped_column(String(26), nullable=False, index=True)
    attribute_id: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    
    value: Mapped[Any] = mapped_column(JSON, nullable=False)
    observer: Mapped[str] = mapped_column(String(26), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # {"in": "question" | "message", "id": "..."}
    message: Mapped[dict[str, str] | None] = mapped_column(JSON, nullable=True)
    
    attribute: Mapped["AttributeRecord"] = relationship("AttributeRecord", back_populates="history")
    
    def __repr__(self) -> str:
        return f"<AttributeSnapshotRecord(attribute_id={self.attribute_id!r}, position={self.position})>"
