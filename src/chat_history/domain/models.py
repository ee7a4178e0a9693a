"""Domain models for the chat history store."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_TITLE = "New Chat"
TITLE_WORD_LIMIT = 6
TITLE_MAX_LENGTH = 50
ELLIPSIS = "..."


class Role(str, Enum):
    """Who sent a message."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """Message model."""

    id: str
    content: str
    role: Role
    timestamp: datetime

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message content must not be blank")
        return value


class Conversation(BaseModel):
    """Conversation model."""

    id: str
    title: str = DEFAULT_TITLE
    messages: List[Message] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def updated_not_before_created(self) -> "Conversation":
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not be earlier than created_at")
        return self


class StoreState(BaseModel):
    """The persisted aggregate: every conversation plus the active pointer."""

    conversations: Dict[str, Conversation] = Field(default_factory=dict)
    active_conversation_id: Optional[str] = None


class StoreSnapshot(BaseModel):
    """Versioned envelope around a store state."""

    version: int
    state: StoreState


def derive_title(content: str) -> str:
    """Build a conversation title from the first words of a message.

    The first six whitespace-separated words are kept; anything longer than
    fifty characters is cut to forty-seven and marked with an ellipsis.
    """
    title = " ".join(content.split()[:TITLE_WORD_LIMIT])
    if len(title) > TITLE_MAX_LENGTH:
        return title[: TITLE_MAX_LENGTH - len(ELLIPSIS)] + ELLIPSIS
    return title
