from client.api_client import ApiError, ChatApiClient
from client.sync import ChatViewState, ConversationSync, auto_conversation_name

__all__ = [
    "ApiError",
    "ChatApiClient",
    "ChatViewState",
    "ConversationSync",
    "auto_conversation_name",
]
