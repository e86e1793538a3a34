# services/chat_service.py
import logging
from typing import List

from models import StandaloneMessage
from services.conversation_service import require_text
from services.exceptions import PersistenceAfterGenerationError, StoreError
from services.llm_service import LLMService
from utils.mongodb_conn import store_errors

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20


class ChatService:
    """Flat chat log, independent from conversations."""

    def __init__(self, db, llm_service: LLMService):
        self.collection = db.messages
        self.llm_service = llm_service

    async def send(self, user_text) -> str:
        user_text = require_text(user_text, "message")
        reply = await self.llm_service.generate_reply(user_text)
        message = StandaloneMessage(user=user_text, bot=reply)
        try:
            with store_errors("Save chat message"):
                await self.collection.insert_one(message.to_document())
        except StoreError as e:
            raise PersistenceAfterGenerationError(reply, e) from e
        return reply

    async def history(self, limit: int = HISTORY_LIMIT) -> List[StandaloneMessage]:
        """Newest first, at most `limit` entries."""
        limit = max(0, min(limit, HISTORY_LIMIT))
        if limit == 0:
            return []
        with store_errors("Fetch history"):
            cursor = self.collection.find().sort("createdAt", -1).limit(limit)
            docs = await cursor.to_list(length=limit)
        return [StandaloneMessage.from_document(doc) for doc in docs]

    async def clear(self) -> int:
        with store_errors("Clear history"):
            result = await self.collection.delete_many({})
        logger.info(f"[Chat] Cleared {result.deleted_count} messages")
        return result.deleted_count

    async def delete_one(self, message_id: str) -> bool:
        with store_errors("Delete chat message"):
            result = await self.collection.delete_one({"_id": message_id})
        return bool(result.deleted_count)
