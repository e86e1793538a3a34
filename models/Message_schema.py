# models/Message_schema.py
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class MessageExchange(BaseModel):
    """One user input paired with the generated reply. Never stored half-written."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    user: str = Field(min_length=1)
    bot: str
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class StandaloneMessage(MessageExchange):
    """Entry of the flat chat log, stored in its own collection."""

    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    def model_post_init(self, __context: Any) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "StandaloneMessage":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(by_alias=True)
        doc["_id"] = doc.pop("id")
        return doc
