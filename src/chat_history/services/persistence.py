"""Snapshot encoding and the persistence observer."""

import json
from typing import Optional

import structlog
from pydantic import ValidationError

from ..domain.errors import SnapshotDecodeError
from ..domain.models import StoreSnapshot, StoreState
from ..repositories.base import BlobStore

logger = structlog.get_logger()

SNAPSHOT_VERSION = 1
DEFAULT_STORE_KEY = "chat-store"


def encode_snapshot(state: StoreState) -> str:
    """Serialize a store state to its versioned JSON blob."""
    snapshot = StoreSnapshot(version=SNAPSHOT_VERSION, state=state)
    return json.dumps(snapshot.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))


def decode_snapshot(blob: str) -> StoreState:
    """Parse a blob produced by :func:`encode_snapshot`.

    Raises:
        SnapshotDecodeError: if the blob is not valid JSON, carries an
            unsupported version, or does not match the state schema.
    """
    try:
        raw = json.loads(blob)
    except (TypeError, ValueError) as e:
        raise SnapshotDecodeError(f"snapshot is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise SnapshotDecodeError("snapshot must be a JSON object")
    version = raw.get("version")
    if version != SNAPSHOT_VERSION:
        raise SnapshotDecodeError(f"unsupported snapshot version: {version!r}")

    try:
        snapshot = StoreSnapshot.model_validate(raw)
    except ValidationError as e:
        raise SnapshotDecodeError(f"snapshot does not match schema: {e.error_count()} errors") from e

    state = snapshot.state
    for conversation_id, conversation in state.conversations.items():
        if conversation.id != conversation_id:
            raise SnapshotDecodeError(
                f"conversation stored under {conversation_id!r} has id {conversation.id!r}"
            )
    return state


class SnapshotPersister:
    """Store listener that writes every emitted state to a blob store.

    Save failures are logged and kept in ``last_error``; they are never
    raised back into the mutation that triggered them.
    """

    def __init__(self, blob_store: BlobStore, key: str = DEFAULT_STORE_KEY) -> None:
        self.blob_store = blob_store
        self.key = key
        self.last_error: Optional[Exception] = None
        self.saves = 0

    def __call__(self, state: StoreState) -> None:
        blob = encode_snapshot(state)
        try:
            self.blob_store.save(self.key, blob)
        except Exception as e:
            self.last_error = e
            logger.error(
                "snapshot_save_failed", key=self.key, error=str(e), error_type=type(e).__name__
            )
            return
        self.last_error = None
        self.saves += 1
        logger.debug(
            "snapshot_saved",
            key=self.key,
            conversations=len(state.conversations),
            size=len(blob),
        )

    def load(self) -> Optional[StoreState]:
        """Read and decode the saved state, or None if nothing usable exists."""
        try:
            blob = self.blob_store.load(self.key)
        except Exception as e:
            logger.warning(
                "snapshot_load_failed", key=self.key, error=str(e), error_type=type(e).__name__
            )
            return None
        if blob is None:
            return None
        try:
            return decode_snapshot(blob)
        except SnapshotDecodeError as e:
            logger.warning("snapshot_discarded", key=self.key, error=str(e))
            return None
