# client/api_client.py
import logging
import os
from typing import Any, List, Optional

import httpx

from models import Conversation, ConversationSummary, MessageExchange, StandaloneMessage

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A backend call failed: unreachable server, error status or non-JSON body."""

    def __init__(self, message: str, status_code: Optional[int] = None, reply: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.reply = reply
        super().__init__(message)


class ChatApiClient:
    """Async client for the chat backend HTTP API."""

    def __init__(self, base_url: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or os.getenv("BACKEND_URL", "http://localhost:5000")).rstrip("/")
        # No timeout: a slow generation call only keeps the sender waiting
        self._client = http_client or httpx.AsyncClient(timeout=None)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ChatApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"[Client] {method} {url} failed: {e}")
            raise ApiError(f"Failed to reach backend at {url}: {e}") from e

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise ApiError(
                f"Server returned non-JSON: {response.text[:100]}",
                status_code=response.status_code,
            )
        data = response.json()
        if response.is_error:
            error = data.get("error", "Request failed") if isinstance(data, dict) else "Request failed"
            detail = data.get("detail", "") if isinstance(data, dict) else ""
            message = f"{error}: {detail}" if detail else error
            reply = data.get("reply") if isinstance(data, dict) else None
            raise ApiError(message, status_code=response.status_code, reply=reply)
        return data

    # Standalone log
    async def chat(self, message: str) -> str:
        data = await self._request("POST", "/api/chat", json={"message": message})
        return data["reply"]

    async def history(self) -> List[StandaloneMessage]:
        data = await self._request("GET", "/api/history")
        return [StandaloneMessage.model_validate(item) for item in data]

    async def clear_history(self) -> None:
        await self._request("DELETE", "/api/history")

    async def delete_history_entry(self, message_id: str) -> None:
        await self._request("DELETE", f"/api/history/{message_id}")

    # Conversations
    async def list_conversations(self) -> List[ConversationSummary]:
        data = await self._request("GET", "/api/conversations")
        return [ConversationSummary.model_validate(item) for item in data]

    async def create_conversation(self, name: str) -> Conversation:
        data = await self._request("POST", "/api/conversations", json={"name": name})
        return Conversation.model_validate(data)

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._request("DELETE", f"/api/conversations/{conversation_id}")

    async def list_messages(self, conversation_id: str) -> List[MessageExchange]:
        data = await self._request("GET", f"/api/conversations/{conversation_id}/messages")
        return [MessageExchange.model_validate(item) for item in data]

    async def send_message(self, conversation_id: str, message: str) -> str:
        data = await self._request(
            "POST", f"/api/conversations/{conversation_id}/messages", json={"message": message}
        )
        return data["reply"]

    async def delete_message(self, conversation_id: str, message_id: str) -> None:
        await self._request("DELETE", f"/api/conversations/{conversation_id}/messages/{message_id}")
