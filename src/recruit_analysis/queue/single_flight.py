"""In-process registry of (entity_id, kind) keys that have a live job."""

from __future__ import annotations

import threading
from typing import Iterable

Key = tuple[str, str]


class SingleFlightRegistry:
    """Tracks which entity/kind pairs are queued or running.

    ``try_acquire`` is the only way in, so the check and the insert happen
    under one lock and two concurrent callers can never both win a key.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keys: set[Key] = set()

    def try_acquire(self, key: Key) -> bool:
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def release(self, key: Key) -> None:
        with self._lock:
            self._keys.discard(key)

    def is_in_flight(self, key: Key) -> bool:
        with self._lock:
            return key in self._keys

    def hydrate(self, keys: Iterable[Key]) -> None:
        """Mark keys already active in durable storage, e.g. after a restart."""
        with self._lock:
            self._keys.update(keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)
