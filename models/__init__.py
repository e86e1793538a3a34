from models.Message_schema import MessageExchange, StandaloneMessage
from models.Conversation_schema import Conversation, ConversationSummary
from models.Api_schema import (
    ChatRequest,
    CreateConversationRequest,
    ErrorResponse,
    ReplyResponse,
    SuccessResponse,
)

__all__ = [
    "MessageExchange",
    "StandaloneMessage",
    "Conversation",
    "ConversationSummary",
    "ChatRequest",
    "CreateConversationRequest",
    "ErrorResponse",
    "ReplyResponse",
    "SuccessResponse",
]
