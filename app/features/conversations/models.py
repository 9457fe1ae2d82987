"""
Conversation model.
"""
from sqlalchemy import String, Text, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin, generate_ulid


class Conversation(Base, TimestampMixin):
    """
    A scripted conversation made up of questions.
    
    Who may take a conversation is decided by the groups that list it, not by
    the conversation itself.
    """
    __tablename__ = "conversations"
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Whether a participant may take the conversation only once
    once: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    
    questions: Mapped[list["Question"]] = relationship(  # type: ignore
        "Question",
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    
    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, name={self.name!r})>"
