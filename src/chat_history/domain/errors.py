"""Exceptions raised by the chat history package."""

from typing import Optional


class ChatHistoryError(Exception):
    """Base class for chat history errors."""


class PersistenceError(ChatHistoryError):
    """A blob store could not read or write a blob."""

    def __init__(self, key: str, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key
        self.cause = cause


class SnapshotDecodeError(ChatHistoryError):
    """A persisted blob is not a snapshot this version can read."""
