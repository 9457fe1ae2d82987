"""
Pydantic schemas for group-related requests and responses.
"""
from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field

from app.features.permissions.models import Role


class GroupBase(BaseModel):
    """Base group schema."""
    name: str = Field(..., min_length=1, max_length=255)
    participants: dict[str, Role] = Field(default_factory=dict, description="User ID to role within the group")
    conversations: list[str] = Field(default_factory=list, description="IDs of conversations the group may take")
    reports: dict[str, Any] = Field(default_factory=dict, description="Reporting metadata keyed by attribute ID")


class GroupCreate(GroupBase):
    """Schema for creating a new group (groot only)."""
    pass


class GroupUpdate(BaseModel):
    """Schema for updating a group. Omitted fields are left unchanged."""
    name: str | None = Field(None, min_length=1, max_length=255)
    participants: dict[str, Role] | None = None
    conversations: list[str] | None = None
    reports: dict[str, Any] | None = None
    regenerate_code: bool = Field(default=False, description="Issue a new join code")


class GroupResponse(GroupBase):
    """Schema for group responses."""
    id: str
    code: str
    created_at: datetime
    updated_at: datetime
    
    model_config = {"from_attributes": True}
