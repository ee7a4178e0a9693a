"""
Application context for the chat history store.

Builds the single conversation store for a process, restored from its blob
store, together with the reply generator and the send flow that sits on top
of it. Callers own the returned ``ChatApplication`` and pass it (or its parts)
to whatever needs them; nothing here is module-global.
"""

from dataclasses import dataclass
from typing import Optional

from structlog import get_logger

from .config import Settings, get_settings
from .log_config import configure_logging
from .repositories.base import BlobStore
from .repositories.file import FileBlobStore
from .repositories.memory import InMemoryBlobStore
from .services.chat_session import ChatSession
from .services.conversation_store import ConversationStore
from .services.persistence import SnapshotPersister
from .services.responder import CannedResponder, GeminiResponder, Responder

logger = get_logger()


@dataclass
class ChatApplication:
    """Everything one chat client process needs."""

    settings: Settings
    blob_store: BlobStore
    persister: SnapshotPersister
    store: ConversationStore
    responder: Responder
    session: ChatSession

    async def shutdown(self) -> None:
        """Let in-flight replies land before the process exits."""
        await self.session.wait_for_replies()
        logger.info("application_shutdown_complete", conversations=len(self.store))


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.storage_dir is not None:
        return FileBlobStore(settings.storage_dir.expanduser())
    return InMemoryBlobStore()


def build_responder(settings: Settings) -> Responder:
    if settings.responder == "gemini":
        if settings.is_gemini_configured:
            return GeminiResponder(
                api_key=settings.gemini_api_key.get_secret_value(),
                model_name=settings.gemini_model,
                context_window=settings.context_window,
            )
        logger.warning("gemini_not_configured", fallback="canned")
    return CannedResponder()


def create_app(
    settings: Optional[Settings] = None,
    blob_store: Optional[BlobStore] = None,
    responder: Optional[Responder] = None,
    **store_kwargs,
) -> ChatApplication:
    """Wire up the application from settings.

    ``blob_store`` and ``responder`` override what the settings would build;
    extra keyword arguments go to the store (id generators, clock).
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.json_logs)

    blob_store = blob_store or build_blob_store(settings)
    persister = SnapshotPersister(blob_store, settings.storage_key)
    store = ConversationStore.restore(persister, **store_kwargs)
    responder = responder or build_responder(settings)
    session = ChatSession(store, responder, reply_delay=settings.reply_delay_seconds)

    logger.info(
        "application_startup_complete",
        storage=type(blob_store).__name__,
        responder=type(responder).__name__,
    )
    return ChatApplication(
        settings=settings,
        blob_store=blob_store,
        persister=persister,
        store=store,
        responder=responder,
        session=session,
    )
