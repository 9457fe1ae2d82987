"""
Question model.
"""
from typing import Any
from sqlalchemy import String, Text, Boolean, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin, generate_ulid


class Question(Base, TimestampMixin):
    """
    A question within a conversation.
    
    ``first`` and ``last`` mark where the conversation starts and ends.
    Options are stored as JSON in their display order.
    """
    __tablename__ = "questions"
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    conversation_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    
    text: Mapped[str] = mapped_column(Text, nullable=False)
    # [{"position": 1, "type": "select", "text": "...", "attribute": {"id": "...", "value": ...}}]
    options: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    first: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    randomize_option_order: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    
    conversation: Mapped["Conversation"] = relationship(  # type: ignore
        "Conversation",
        back_populates="questions"
    )
    
    def __repr__(self) -> str:
        return f"<Question(id={self.id}, conversation_id={self.conversation_id})>"
