"""Send flow for the active conversation.

A send appends the user's message right away and schedules the assistant's
reply as a separate append after a delay. The store knows nothing about
pending replies; the "assistant is typing" state lives here.
"""

import asyncio
from typing import Optional, Set

import structlog

from ..domain.models import Message, Role
from .conversation_store import ConversationStore
from .responder import Responder

logger = structlog.get_logger()


class ChatSession:
    """Drives user/assistant exchanges against a conversation store."""

    def __init__(self, store: ConversationStore, responder: Responder, reply_delay: float = 1.0) -> None:
        if reply_delay < 0:
            raise ValueError("reply_delay must not be negative")
        self.store = store
        self.responder = responder
        self.reply_delay = reply_delay
        self._pending: Set[asyncio.Task] = set()

    @property
    def is_generating(self) -> bool:
        """True while at least one assistant reply has not landed yet."""
        return bool(self._pending)

    def start_new_chat(self) -> str:
        return self.store.create_conversation()

    def select(self, conversation_id: str) -> None:
        self.store.set_active(conversation_id)

    async def send(self, content: str) -> Optional[Message]:
        """Post a user message to the active conversation and queue a reply."""
        conversation_id = self.store.active_conversation_id
        if conversation_id is None or not content or not content.strip():
            return None

        user_message = self.store.append_message(conversation_id, content, Role.USER)
        if user_message is None:
            return None

        conversation = self.store.get_conversation(conversation_id)
        history = conversation.messages[:-1] if conversation else []
        task = asyncio.create_task(self._reply(conversation_id, content, history))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return user_message

    async def _reply(self, conversation_id: str, prompt: str, history) -> None:
        await asyncio.sleep(self.reply_delay)
        try:
            reply = await self.responder.generate_reply(prompt, history)
        except Exception as e:
            logger.error("reply_generation_failed", conversation_id=conversation_id, error=str(e))
            return
        message = self.store.append_message(conversation_id, reply, Role.ASSISTANT)
        if message is None:
            logger.info("reply_dropped", conversation_id=conversation_id)

    async def wait_for_replies(self) -> None:
        """Wait until every scheduled reply has been delivered or dropped."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
