"""Conversation store: the owner of every chat thread and the active pointer."""

from typing import Callable, Dict, List, Optional, Union

import structlog

from ..domain.ids import Clock, IdGenerator, TimestampIdGenerator, utc_now
from ..domain.models import Conversation, Message, Role, StoreState, derive_title
from ..repositories.base import BlobStore
from .persistence import DEFAULT_STORE_KEY, SnapshotPersister

logger = structlog.get_logger()

Listener = Callable[[StoreState], None]


class ConversationStore:
    """In-memory collection of conversations with an optional active one.

    Every state-changing operation notifies subscribed listeners exactly once
    with a copy of the full state. Operations that reference a conversation
    which does not exist, or that would not change anything, are no-ops and
    notify nobody.

    Read accessors return copies; the store is the only holder of the live
    objects.
    """

    def __init__(
        self,
        state: Optional[StoreState] = None,
        conversation_ids: Optional[IdGenerator] = None,
        message_ids: Optional[IdGenerator] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        state = state.model_copy(deep=True) if state is not None else StoreState()
        self._conversations: Dict[str, Conversation] = dict(state.conversations)
        self._active_id: Optional[str] = state.active_conversation_id
        if self._active_id is not None and self._active_id not in self._conversations:
            logger.warning("dangling_active_conversation_cleared", conversation_id=self._active_id)
            self._active_id = None
        self._conversation_ids = conversation_ids or TimestampIdGenerator("chat")
        self._message_ids = message_ids or TimestampIdGenerator("msg")
        self._clock = clock or utc_now
        self._listeners: List[Listener] = []

    @classmethod
    def restore(
        cls,
        blob_store: Union[BlobStore, SnapshotPersister],
        key: str = DEFAULT_STORE_KEY,
        **kwargs,
    ) -> "ConversationStore":
        """Build a store from the state saved in a blob store.

        A missing or unreadable snapshot yields an empty store. The returned
        store persists itself back under the same key after every mutation.
        """
        if isinstance(blob_store, SnapshotPersister):
            persister = blob_store
        else:
            persister = SnapshotPersister(blob_store, key)
        state = persister.load()
        store = cls(state=state, **kwargs)
        store.subscribe(persister)
        logger.info(
            "store_restored",
            key=persister.key,
            conversations=len(store),
            active_conversation_id=store.active_conversation_id,
        )
        return store

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for state changes; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        if not self._listeners:
            return
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error("store_listener_failed", listener=repr(listener), error=str(e))

    def __len__(self) -> int:
        return len(self._conversations)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations

    @property
    def active_conversation_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_conversation(self) -> Optional[Conversation]:
        if self._active_id is None:
            return None
        return self.get_conversation(self._active_id)

    def snapshot(self) -> StoreState:
        """Return a deep copy of the whole aggregate."""
        return StoreState(
            conversations={cid: c.model_copy(deep=True) for cid, c in self._conversations.items()},
            active_conversation_id=self._active_id,
        )

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Retrieve a copy of a conversation by ID."""
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return None
        return conversation.model_copy(deep=True)

    def list_conversations(self, limit: int = 100, offset: int = 0) -> List[Conversation]:
        """List conversations, most recently updated first."""
        conversations = sorted(
            self._conversations.values(),
            key=lambda c: c.updated_at,
            reverse=True,
        )
        return [c.model_copy(deep=True) for c in conversations[offset : offset + limit]]

    def create_conversation(self) -> str:
        """Create an empty conversation, make it active and return its ID."""
        conversation_id = self._conversation_ids.next()
        while conversation_id in self._conversations:
            conversation_id = self._conversation_ids.next()
        now = self._clock()
        self._conversations[conversation_id] = Conversation(
            id=conversation_id, created_at=now, updated_at=now
        )
        self._active_id = conversation_id
        logger.info("conversation_created", conversation_id=conversation_id)
        self._emit()
        return conversation_id

    def set_active(self, conversation_id: str) -> None:
        """Point the active conversation at an existing conversation.

        Unknown IDs are ignored so the active pointer never dangles.
        """
        if conversation_id not in self._conversations:
            logger.warning("set_active_unknown_conversation", conversation_id=conversation_id)
            return
        if conversation_id == self._active_id:
            return
        self._active_id = conversation_id
        self._emit()

    def append_message(
        self, conversation_id: str, content: str, role: Union[Role, str]
    ) -> Optional[Message]:
        """Append a message and return a copy of it.

        Blank content and unknown conversations are no-ops returning None;
        a reply arriving after its conversation was deleted lands here.
        The first message titles the conversation when it comes from the user.
        """
        if not content or not content.strip():
            logger.debug("blank_message_ignored", conversation_id=conversation_id)
            return None
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            logger.warning("conversation_not_found_for_message", conversation_id=conversation_id)
            return None

        role = Role(role)
        now = self._clock()
        message = Message(id=self._message_ids.next(), content=content, role=role, timestamp=now)
        is_first = not conversation.messages
        conversation.messages.append(message)
        conversation.updated_at = max(now, conversation.updated_at)
        if is_first and role is Role.USER:
            conversation.title = derive_title(content)

        logger.info(
            "message_added",
            conversation_id=conversation_id,
            message_role=role.value,
            message_count=len(conversation.messages),
        )
        self._emit()
        return message.model_copy(deep=True)

    def rename_conversation(self, conversation_id: str, new_title: str) -> None:
        """Set a conversation's title; blank or unchanged titles are ignored."""
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            logger.warning("conversation_not_found_for_rename", conversation_id=conversation_id)
            return
        title = (new_title or "").strip()
        if not title or title == conversation.title:
            return
        conversation.title = title
        conversation.updated_at = max(self._clock(), conversation.updated_at)
        logger.info("conversation_renamed", conversation_id=conversation_id)
        self._emit()

    def delete_conversation(self, conversation_id: str) -> None:
        """Remove a conversation, clearing the active pointer if it pointed there."""
        if self._conversations.pop(conversation_id, None) is None:
            logger.debug("conversation_not_found_for_delete", conversation_id=conversation_id)
            return
        if self._active_id == conversation_id:
            self._active_id = None
        logger.info("conversation_deleted", conversation_id=conversation_id)
        self._emit()

    def clear_all(self) -> None:
        """Drop every conversation and the active pointer."""
        if not self._conversations and self._active_id is None:
            return
        count = len(self._conversations)
        self._conversations.clear()
        self._active_id = None
        logger.info("conversations_cleared", count=count)
        self._emit()
