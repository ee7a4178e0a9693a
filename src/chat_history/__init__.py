"""Conversation history store for a chat client."""

from .domain.models import Conversation, Message, Role, StoreState
from .services.conversation_store import ConversationStore

__version__ = "0.1.0"

__all__ = ["Conversation", "ConversationStore", "Message", "Role", "StoreState"]
