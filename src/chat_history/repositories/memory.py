"""In-memory blob store implementation."""

from typing import Dict, Optional

import structlog

from .base import BlobStore

logger = structlog.get_logger()


class InMemoryBlobStore(BlobStore):
    """Blob store kept in a process-local dictionary."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._blobs: Dict[str, str] = dict(initial or {})
        self.save_count = 0
        logger.info("blob_store_initialized", backend="memory", keys=len(self._blobs))

    def save(self, key: str, blob: str) -> None:
        self._blobs[key] = blob
        self.save_count += 1
        logger.debug("blob_saved", key=key, size=len(blob))

    def load(self, key: str) -> Optional[str]:
        blob = self._blobs.get(key)
        if blob is None:
            logger.info("blob_not_found", key=key)
        return blob

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)
