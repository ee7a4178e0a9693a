"""Blob store backed by one JSON file per key."""

import contextlib
import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog

from ..domain.errors import PersistenceError
from .base import BlobStore

logger = structlog.get_logger()

_SAFE_KEY = re.compile(r"[A-Za-z0-9_-][A-Za-z0-9._-]*")


class FileBlobStore(BlobStore):
    """Store each blob as ``<directory>/<key>.json``.

    Writes go to a temporary file in the same directory first and are then
    moved into place, so a crash mid-write leaves the previous blob intact.
    """

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        logger.info("blob_store_initialized", backend="file", directory=str(self.directory))

    def path_for(self, key: str) -> Path:
        """Map a key to its file; keys are letters, digits, ``.``, ``_`` and ``-``."""
        if not key or not _SAFE_KEY.fullmatch(key):
            raise ValueError(f"invalid blob key: {key!r}")
        return self.directory / f"{key}.json"

    def save(self, key: str, blob: str) -> None:
        path = self.path_for(key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{path.stem}-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(blob)
                os.replace(tmp_name, path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error("blob_save_error", key=key, path=str(path), error=str(e))
            raise PersistenceError(key, f"could not write {path}", cause=e) from e
        logger.debug("blob_saved", key=key, path=str(path), size=len(blob))

    def load(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("blob_not_found", key=key, path=str(path))
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.error("blob_load_error", key=key, path=str(path), error=str(e))
            raise PersistenceError(key, f"could not read {path}", cause=e) from e

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceError(key, f"could not delete {path}", cause=e) from e

