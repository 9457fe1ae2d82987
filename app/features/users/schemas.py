"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)


class UserUpdate(BaseModel):
    """Schema for updating user information."""
    name: str | None = Field(None, min_length=1, max_length=255)
    phone: str | None = Field(None, max_length=20, pattern=r"^\+?[0-9 ()-]{4,20}$")


class UserResponse(UserBase):
    """Schema for user responses."""
    id: str
    phone: str | None = None
    last_signed_in: datetime | None = None
    
    model_config = {"from_attributes": True}


class CurrentUserResponse(UserResponse):
    """Profile of the requesting user, including their claims."""
    is_groot: bool = False
