# models/Conversation_schema.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.Message_schema import MessageExchange, new_id, utcnow


class ConversationSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ConversationSummary":
        return cls(id=str(doc["_id"]), name=doc["name"], created_at=doc["createdAt"])


class Conversation(BaseModel):
    """
    Named thread owning its exchanges in chronological order.
    `version` grows by one on every stored change of `messages`.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1)
    messages: List[MessageExchange] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    version: int = 0

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Conversation":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        data.setdefault("version", 0)
        return cls.model_validate(data)

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(by_alias=True)
        doc["_id"] = doc.pop("id")
        return doc

    def summary(self) -> ConversationSummary:
        return ConversationSummary(id=self.id, name=self.name, created_at=self.created_at)

    def find_message(self, message_id: str) -> Optional[MessageExchange]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def append_message(self, exchange: MessageExchange) -> None:
        self.messages.append(exchange)

    def remove_message(self, message_id: str) -> bool:
        """Drop one exchange by id, keeping the others in place. False when absent."""
        kept = [m for m in self.messages if m.id != message_id]
        if len(kept) == len(self.messages):
            return False
        self.messages = kept
        return True
