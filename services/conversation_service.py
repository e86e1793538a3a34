# services/conversation_service.py
import logging
from typing import Callable, List

from models import Conversation, ConversationSummary, MessageExchange
from services.exceptions import (
    ChatBackendError,
    ConflictError,
    ConversationNotFoundError,
    MessageNotFoundError,
    PersistenceAfterGenerationError,
    ValidationError,
)
from services.llm_service import LLMService
from utils.mongodb_conn import store_errors

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 3


def require_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field}' must be a non-empty string", {"field": field})
    return value


class ConversationService:
    """
    Conversations live in one collection, each document embedding its
    exchanges. Every change to `messages` is a read-modify-write guarded by
    the document's `version`.
    """

    def __init__(self, db, llm_service: LLMService, max_write_attempts: int = MAX_WRITE_ATTEMPTS):
        self.collection = db.conversations
        self.llm_service = llm_service
        self.max_write_attempts = max_write_attempts

    async def list_conversations(self) -> List[ConversationSummary]:
        with store_errors("List conversations"):
            cursor = self.collection.find({}, {"name": 1, "createdAt": 1}).sort("createdAt", 1)
            docs = await cursor.to_list(length=None)
        return [ConversationSummary.from_document(doc) for doc in docs]

    async def create_conversation(self, name) -> Conversation:
        conversation = Conversation(name=require_text(name, "name"))
        with store_errors("Create conversation"):
            await self.collection.insert_one(conversation.to_document())
        logger.info(f"[ConversationService] Created conversation {conversation.id}")
        return conversation

    async def delete_conversation(self, conversation_id: str) -> bool:
        """Delete the conversation and its embedded exchanges. Unknown ids are not an error."""
        with store_errors("Delete conversation"):
            result = await self.collection.delete_one({"_id": conversation_id})
        if result.deleted_count:
            logger.info(f"[ConversationService] Deleted conversation {conversation_id}")
        return bool(result.deleted_count)

    async def get_conversation(self, conversation_id: str) -> Conversation:
        with store_errors("Fetch conversation"):
            doc = await self.collection.find_one({"_id": conversation_id})
        if doc is None:
            raise ConversationNotFoundError(conversation_id)
        return Conversation.from_document(doc)

    async def list_messages(self, conversation_id: str) -> List[MessageExchange]:
        conversation = await self.get_conversation(conversation_id)
        return conversation.messages

    async def add_message(self, conversation_id: str, user_text) -> str:
        """
        Generate a reply for `user_text` and store the exchange in the
        conversation. Returns only the reply text.

        The generation API is called at most once. If storing fails after
        it answered, PersistenceAfterGenerationError carries the reply.
        """
        user_text = require_text(user_text, "message")
        conversation = await self.get_conversation(conversation_id)

        reply = await self.llm_service.generate_reply(user_text)
        exchange = MessageExchange(user=user_text, bot=reply)

        try:
            await self._update_messages(
                conversation, lambda conv: conv.append_message(exchange)
            )
        except ConversationNotFoundError:
            raise
        except ChatBackendError as e:
            logger.error(
                f"[ConversationService] Reply generated but not saved for {conversation_id}: {e.message}"
            )
            raise PersistenceAfterGenerationError(reply, e) from e
        return reply

    async def delete_message(self, conversation_id: str, message_id: str) -> None:
        conversation = await self.get_conversation(conversation_id)

        def remove(conv: Conversation) -> None:
            if not conv.remove_message(message_id):
                raise MessageNotFoundError(conv.id, message_id)

        await self._update_messages(conversation, remove)
        logger.info(f"[ConversationService] Deleted message {message_id} from {conversation_id}")

    async def _update_messages(
        self, conversation: Conversation, mutate: Callable[[Conversation], None]
    ) -> Conversation:
        """Apply `mutate` and store it; on a version clash re-read and re-apply."""
        for attempt in range(1, self.max_write_attempts + 1):
            expected_version = conversation.version
            mutate(conversation)
            if await self._save_messages(conversation, expected_version):
                return conversation
            logger.warning(
                f"[ConversationService] Version conflict on {conversation.id} "
                f"(attempt {attempt}/{self.max_write_attempts})"
            )
            conversation = await self.get_conversation(conversation.id)
        raise ConflictError(conversation.id, self.max_write_attempts)

    async def _save_messages(self, conversation: Conversation, expected_version: int) -> bool:
        with store_errors("Save conversation"):
            result = await self.collection.update_one(
                {"_id": conversation.id, "version": expected_version},
                {
                    "$set": {
                        "messages": [m.to_document() for m in conversation.messages],
                        "version": expected_version + 1,
                    }
                },
            )
        if result.matched_count == 0:
            return False
        conversation.version = expected_version + 1
        return True
