# api/chat/chat.py
from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import get_chat_service
from models import ChatRequest, ReplyResponse, StandaloneMessage, SuccessResponse
from services.chat_service import ChatService

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat", response_model=ReplyResponse)
async def chat(
    request: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
):
    """Send one message to the generation API and log the exchange"""
    reply = await chat_service.send(request.message)
    return ReplyResponse(reply=reply)


@router.get("/history", response_model=List[StandaloneMessage])
async def history(chat_service: ChatService = Depends(get_chat_service)):
    """Last 20 exchanges, newest first"""
    return await chat_service.history()


@router.delete("/history", response_model=SuccessResponse)
async def clear_history(chat_service: ChatService = Depends(get_chat_service)):
    await chat_service.clear()
    return SuccessResponse(message="History cleared")


@router.delete("/history/{message_id}", response_model=SuccessResponse)
async def delete_history_entry(
    message_id: str,
    chat_service: ChatService = Depends(get_chat_service),
):
    await chat_service.delete_one(message_id)
    return SuccessResponse(message="Chat deleted")
