"""
Pydantic schemas for conversation-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field


class ConversationBase(BaseModel):
    """Base conversation schema."""
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    once: bool = Field(default=False, description="Whether a participant may take it only once")
    tags: list[str] = Field(default_factory=list)


class ConversationCreate(ConversationBase):
    """Schema for creating a conversation (groot only)."""
    pass


class ConversationUpdate(BaseModel):
    """Schema for updating a conversation. Omitted fields are left unchanged."""
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    once: bool | None = None
    tags: list[str] | None = None


class ConversationResponse(ConversationBase):
    """Schema for conversation responses."""
    id: str
    created_at: datetime
    updated_at: datetime
    
    model_config = {"from_attributes": True}
