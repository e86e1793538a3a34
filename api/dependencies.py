from fastapi import Request

from services.chat_service import ChatService
from services.conversation_service import ConversationService


def get_conversation_service(request: Request) -> ConversationService:
    return request.app.state.conversation_service


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service
