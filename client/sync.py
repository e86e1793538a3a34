# client/sync.py
"""
Client-side state for the multi-conversation chat view.

Holds what the UI renders (conversation list, selection, messages of the
selected conversation, input box, sending flag, one error slot) and keeps
it in step with the backend. Lists are always replaced wholesale from a
fresh fetch, never patched locally.

Fetches are not cancelled when superseded. Each list fetch takes a ticket
from a generation counter instead, and a response is applied only if its
ticket is still the newest one (and, for messages, its conversation is
still selected).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from client.api_client import ApiError, ChatApiClient
from models import ConversationSummary, MessageExchange

logger = logging.getLogger(__name__)

AUTO_NAME_PREFIX_LENGTH = 20


def auto_conversation_name(first_message: str, now: Optional[datetime] = None) -> str:
    """Label for a conversation created implicitly by its first message."""
    now = now or datetime.now()
    short = first_message.replace("\n", " ")[:AUTO_NAME_PREFIX_LENGTH]
    stamp = f"{now.day}/{now.month}/{now.year} {now.hour:02d}:{now.minute:02d}"
    return f"{short} - {stamp}".strip()


@dataclass
class ChatViewState:
    conversations: List[ConversationSummary] = field(default_factory=list)
    selected_conversation: Optional[str] = None
    messages: List[MessageExchange] = field(default_factory=list)
    pending_input: str = ""
    is_sending: bool = False
    last_error: Optional[str] = None


class ConversationSync:
    def __init__(self, api: ChatApiClient, state: Optional[ChatViewState] = None):
        self.api = api
        self.state = state or ChatViewState()
        self._conversations_generation = 0
        self._messages_generation = 0

    def clear_error(self) -> None:
        self.state.last_error = None

    def _fail(self, message: str) -> None:
        logger.warning(f"[Sync] {message}")
        self.state.last_error = message

    async def load(self) -> None:
        """Initial mount: fetch the list and select the first conversation if none is."""
        await self.refresh_conversations()
        if self.state.conversations and self.state.selected_conversation is None:
            await self.select(self.state.conversations[0].id)

    async def refresh_conversations(self) -> bool:
        self._conversations_generation += 1
        generation = self._conversations_generation
        try:
            conversations = await self.api.list_conversations()
        except ApiError as e:
            if generation == self._conversations_generation:
                self.state.conversations = []
                self._fail(e.message)
            return False
        if generation != self._conversations_generation:
            logger.debug("[Sync] Dropping stale conversation list")
            return False
        self.state.conversations = conversations
        return True

    async def select(self, conversation_id: Optional[str]) -> None:
        self.state.selected_conversation = conversation_id
        await self.refresh_messages(conversation_id)

    async def refresh_messages(self, conversation_id: Optional[str] = None) -> bool:
        """
        Replace the local messages with the server's list for the selected
        conversation. Returns False when nothing was applied.

        A refresh for a conversation that is no longer selected does not take
        a ticket, so it cannot invalidate the fetch of the current selection.
        """
        conversation_id = conversation_id or self.state.selected_conversation
        if conversation_id != self.state.selected_conversation:
            logger.debug(f"[Sync] Skipping refresh of unselected {conversation_id}")
            return False
        self._messages_generation += 1
        generation = self._messages_generation
        if conversation_id is None:
            self.state.messages = []
            return True

        try:
            messages = await self.api.list_messages(conversation_id)
        except ApiError as e:
            if self._is_current(generation, conversation_id):
                self.state.messages = []
                self._fail(e.message)
            return False
        if not self._is_current(generation, conversation_id):
            logger.debug(f"[Sync] Dropping stale messages of {conversation_id}")
            return False
        self.state.messages = messages
        return True

    def _is_current(self, generation: int, conversation_id: str) -> bool:
        return (
            generation == self._messages_generation
            and conversation_id == self.state.selected_conversation
        )

    async def add_conversation(self, name: str) -> Optional[str]:
        """Create a named conversation from the sidebar. The selection does not move."""
        if not name.strip():
            return None
        self.clear_error()
        try:
            conversation = await self.api.create_conversation(name)
        except ApiError:
            self._fail("Failed to add conversation")
            return None
        await self.refresh_conversations()
        return conversation.id

    async def _create_conversation_for(self, first_message: str) -> str:
        conversation = await self.api.create_conversation(auto_conversation_name(first_message))
        self.state.selected_conversation = conversation.id
        if not any(c.id == conversation.id for c in self.state.conversations):
            self.state.conversations = [conversation.summary(), *self.state.conversations]
        return conversation.id

    async def send(self, text: Optional[str] = None) -> Optional[str]:
        """
        Send `text` (default: the pending input) to the selected conversation,
        creating one first when none is selected. The reply shows up only
        through the re-fetch that follows a successful send. Ignored while a
        send is already in flight.
        """
        if self.state.is_sending:
            return None
        if text is not None:
            self.state.pending_input = text
        text = self.state.pending_input
        if not text.strip():
            return None

        self.state.is_sending = True
        self.clear_error()
        try:
            conversation_id = self.state.selected_conversation
            if conversation_id is None:
                conversation_id = await self._create_conversation_for(text)
            reply = await self.api.send_message(conversation_id, text)
            self.state.pending_input = ""
            await self.refresh_messages(conversation_id)
            return reply
        except ApiError as e:
            self._fail(e.message or "Failed to send message")
            return None
        finally:
            self.state.is_sending = False

    async def delete_conversation(self, conversation_id: str) -> None:
        self.clear_error()
        try:
            await self.api.delete_conversation(conversation_id)
        except ApiError:
            self._fail("Failed to delete conversation")
        if self.state.selected_conversation == conversation_id:
            self.state.selected_conversation = None
            self._messages_generation += 1
            self.state.messages = []
        await self.refresh_conversations()

    async def delete_message(self, message_id: str) -> None:
        conversation_id = self.state.selected_conversation
        if conversation_id is None:
            return
        self.clear_error()
        try:
            await self.api.delete_message(conversation_id, message_id)
        except ApiError:
            self._fail("Failed to delete message")
        await self.refresh_messages(conversation_id)
