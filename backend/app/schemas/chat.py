"""Pydantic schemas for the healthcare chat API."""

from typing import Optional, List, Literal
from pydantic import BaseModel, Field


class ChatTurn(BaseModel):
    """One prior message of the conversation as kept by the client."""
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=4000)


class HealthcareChatRequest(BaseModel):
    """Schema for asking the recovery assistant a question."""
    message: str = Field(..., min_length=1, max_length=4000, description="Message content")
    messages: List[ChatTurn] = Field(
        default_factory=list,
        description="Client transcript; the last entry is the message being asked"
    )


class HealthcareChatResponse(BaseModel):
    response: str


class ErrorResponse(BaseModel):
    error: str
    response: Optional[str] = None
