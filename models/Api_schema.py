# models/Api_schema.py
from typing import Optional

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str = Field(description="User message sent to the generation API")


class CreateConversationRequest(BaseModel):
    name: Optional[str] = Field(default=None, description="Conversation label")


class ReplyResponse(BaseModel):
    reply: str


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    detail: str
    reply: Optional[str] = None
