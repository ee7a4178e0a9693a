"""Base blob store interface."""

from abc import ABC, abstractmethod
from typing import Optional


class BlobStore(ABC):
    """Abstract base class for key-value blob stores."""

    @abstractmethod
    def save(self, key: str, blob: str) -> None:
        """Store a blob under a key, replacing any previous value.

        Raises:
            PersistenceError: if the blob could not be written.
        """
        pass

    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        """Return the blob stored under a key, or None if there is none.

        Raises:
            PersistenceError: if the blob exists but could not be read.
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the blob stored under a key if present."""
        pass
