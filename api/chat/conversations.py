# api/chat/conversations.py
from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import get_conversation_service
from models import (
    ChatRequest,
    Conversation,
    ConversationSummary,
    CreateConversationRequest,
    MessageExchange,
    ReplyResponse,
    SuccessResponse,
)
from services.conversation_service import ConversationService

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("", response_model=List[ConversationSummary])
async def list_conversations(
    conv_service: ConversationService = Depends(get_conversation_service),
):
    """Conversations without their messages, oldest first"""
    return await conv_service.list_conversations()


@router.post("", response_model=Conversation)
async def create_conversation(
    request: CreateConversationRequest,
    conv_service: ConversationService = Depends(get_conversation_service),
):
    return await conv_service.create_conversation(request.name)


@router.delete("/{conversation_id}", response_model=SuccessResponse, response_model_exclude_none=True)
async def delete_conversation(
    conversation_id: str,
    conv_service: ConversationService = Depends(get_conversation_service),
):
    await conv_service.delete_conversation(conversation_id)
    return SuccessResponse()


@router.get("/{conversation_id}/messages", response_model=List[MessageExchange])
async def get_messages(
    conversation_id: str,
    conv_service: ConversationService = Depends(get_conversation_service),
):
    return await conv_service.list_messages(conversation_id)


@router.post("/{conversation_id}/messages", response_model=ReplyResponse)
async def add_message(
    conversation_id: str,
    request: ChatRequest,
    conv_service: ConversationService = Depends(get_conversation_service),
):
    """Generate a reply and append the exchange. Re-fetch the messages to see its id."""
    reply = await conv_service.add_message(conversation_id, request.message)
    return ReplyResponse(reply=reply)


@router.delete(
    "/{conversation_id}/messages/{message_id}",
    response_model=SuccessResponse,
    response_model_exclude_none=True,
)
async def delete_message(
    conversation_id: str,
    message_id: str,
    conv_service: ConversationService = Depends(get_conversation_service),
):
    await conv_service.delete_message(conversation_id, message_id)
    return SuccessResponse()
