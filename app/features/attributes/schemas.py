"""
Pydantic schemas for attributes and their history.

An attribute is a named value held about a user (the subject). Every change
to the value is recorded as a snapshot naming who observed it, when, and
optionally which question or message triggered it.
"""
from datetime import datetime
from typing import Literal, Union
from pydantic import BaseModel, ConfigDict, Field


AttributeValue = Union[bool, int, float, str]

# Observer recorded for changes made by the conversation bot
BOT_OBSERVER = "bot"


class BlamedMessage(BaseModel):
    """Where a change was observed: a question or a message, by ID."""
    model_config = ConfigDict(populate_by_name=True)
    
    in_: Literal["question", "message"] = Field(..., alias="in")
    id: str = Field(..., min_length=1)


class AttributeSnapshot(BaseModel):
    """One immutable entry in an attribute's history."""
    model_config = ConfigDict(frozen=True)
    
    value: AttributeValue
    observer: str = Field(..., description="ID of the user who made the change, or 'bot'")
    timestamp: datetime
    message: BlamedMessage | None = None


class Attribute(BaseModel):
    """An attribute's current value together with its full history."""
    model_config = ConfigDict(frozen=True)
    
    id: str
    value: AttributeValue
    history: tuple[AttributeSnapshot, ...] = ()


class AttributeCreate(BaseModel):
    """Schema for creating an attribute."""
    id: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_.:-]+$")
    value: AttributeValue
    message: BlamedMessage | None = None


class AttributeUpdate(BaseModel):
    """Schema for changing an attribute's value."""
    value: AttributeValue
    message: BlamedMessage | None = None
