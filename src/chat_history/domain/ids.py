"""Identifier and clock capabilities used by the store."""

import random
import string
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Set


_ALPHABET = string.ascii_lowercase + string.digits

Clock = Callable[[], datetime]


class IdGenerator(Protocol):
    """Produces opaque identifiers."""

    def next(self) -> str:
        ...


class TimestampIdGenerator:
    """Generate ids as ``<prefix>_<epoch millis>_<random suffix>``.

    Identifiers issued in the current millisecond are remembered so a
    collision on the random suffix is retried instead of reused; the memory
    is dropped as soon as the clock moves on.
    """

    def __init__(self, prefix: str, suffix_length: int = 9, rng: Optional[random.Random] = None) -> None:
        self.prefix = prefix
        self.suffix_length = suffix_length
        self._rng = rng or random.SystemRandom()
        self._issued_millis: Optional[int] = None
        self._issued: Set[str] = set()

    def next(self) -> str:
        while True:
            millis = int(time.time() * 1000)
            if millis != self._issued_millis:
                self._issued_millis = millis
                self._issued = set()
            suffix = "".join(self._rng.choice(_ALPHABET) for _ in range(self.suffix_length))
            candidate = f"{self.prefix}_{millis}_{suffix}"
            if candidate not in self._issued:
                self._issued.add(candidate)
                return candidate


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
