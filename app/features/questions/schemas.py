"""
Pydantic schemas for question-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from app.features.attributes.schemas import AttributeValue


class OptionAttribute(BaseModel):
    """Attribute value applied to the person answering when the option is chosen."""
    id: str = Field(..., min_length=1, max_length=100)
    value: AttributeValue


class QuestionOption(BaseModel):
    """One answer a participant can give."""
    position: int = Field(..., ge=0)
    type: str = Field(..., min_length=1, max_length=50, description="How the option is presented, e.g. select or input")
    text: str = Field(..., min_length=1)
    attribute: OptionAttribute | None = None


def _ordered(options: list[QuestionOption]) -> list[QuestionOption]:
    positions = [option.position for option in options]
    if len(set(positions)) != len(positions):
        raise ValueError("option positions must be unique")
    return sorted(options, key=lambda option: option.position)


class QuestionBase(BaseModel):
    """Base question schema."""
    text: str = Field(..., min_length=1)
    options: list[QuestionOption] = Field(default_factory=list)
    first: bool = Field(default=False, description="Whether the conversation starts with this question")
    last: bool = Field(default=False, description="Whether the conversation ends with this question")
    randomize_option_order: bool = False
    tags: list[str] = Field(default_factory=list)


class QuestionCreate(QuestionBase):
    """Schema for creating a question (groot only)."""
    
    @field_validator("options")
    @classmethod
    def order_options(cls, options: list[QuestionOption]) -> list[QuestionOption]:
        return _ordered(options)


class QuestionUpdate(BaseModel):
    """Schema for updating a question. Omitted fields are left unchanged."""
    text: str | None = Field(None, min_length=1)
    options: list[QuestionOption] | None = None
    first: bool | None = None
    last: bool | None = None
    randomize_option_order: bool | None = None
    tags: list[str] | None = None
    
    @field_validator("options")
    @classmethod
    def order_options(cls, options: list[QuestionOption] | None) -> list[QuestionOption] | None:
        return _ordered(options) if options is not None else None


class QuestionResponse(QuestionBase):
    """Schema for question responses."""
    id: str
    conversation_id: str
    created_at: datetime
    updated_at: datetime
    
    model_config = {"from_attributes": True}
