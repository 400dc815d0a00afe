"""
Admission Limiter
Sliding-window request counter per user, guarding ingestion and report routes.

State is process-local. Running several API instances behind a balancer
multiplies the effective limit by the instance count; a shared counter
(Redis or similar) has to back the window store for a global limit.
"""

import logging
import math
import random
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)


def now_ms() -> float:
    return time.time() * 1000


# ============================================================
# WINDOW STORE
# ============================================================

class RateWindowStore(ABC):
    """Per-user request timestamps (ms), oldest first"""

    @abstractmethod
    def get(self, user_id: str) -> list[float]:
        ...

    @abstractmethod
    def set(self, user_id: str, timestamps: list[float]) -> None:
        ...

    @abstractmethod
    def delete(self, user_id: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> Iterable[str]:
        ...


class InMemoryRateWindowStore(RateWindowStore):
    """Empty on startup, lives as long as the process"""

    def __init__(self):
        self._windows: dict[str, list[float]] = {}

    def get(self, user_id: str) -> list[float]:
        return list(self._windows.get(user_id, []))

    def set(self, user_id: str, timestamps: list[float]) -> None:
        self._windows[user_id] = list(timestamps)

    def delete(self, user_id: str) -> None:
        self._windows.pop(user_id, None)

    def keys(self) -> Iterable[str]:
        return list(self._windows.keys())

    def __len__(self) -> int:
        return len(self._windows)


# ============================================================
# LIMITER
# ============================================================

DEFAULT_LOCK_STRIPES = 64


class AdmissionLimiter:
    """
    Accepts at most max_requests per user in any trailing window_ms.

    Rejection is a normal outcome: allow() returns False and the caller
    answers with retry_after_seconds.

    Each user maps to one of lock_stripes locks, so a user's read and
    write of the window store are exclusive while other users proceed.
    Store calls run while that lock is held and must not block for long.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_ms: int = 15 * 60 * 1000,
        store: Optional[RateWindowStore] = None,
        clock: Callable[[], float] = now_ms,
        rng: Callable[[], float] = random.random,
        cleanup_probability: float = 0.01,
        name: str = "default",
        lock_stripes: int = DEFAULT_LOCK_STRIPES,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be positive")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        if lock_stripes < 1:
            raise ValueError("lock_stripes must be positive")

        self.max_requests = max_requests
        self.window_ms = window_ms
        self.store = store if store is not None else InMemoryRateWindowStore()
        self.clock = clock
        self.rng = rng
        self.cleanup_probability = cleanup_probability
        self.name = name
        self._stripes = [threading.Lock() for _ in range(lock_stripes)]

        logger.info(
            "Rate limiter %r: %d requests per %dms (process-local)",
            name, max_requests, window_ms,
        )

    def _lock_for(self, user_id: str) -> threading.Lock:
        return self._stripes[hash(user_id) % len(self._stripes)]

    @property
    def retry_after_seconds(self) -> int:
        return math.ceil(self.window_ms / 1000)

    def allow(self, user_id: str, now: Optional[float] = None) -> bool:
        if now is None:
            now = self.clock()
        window_start = now - self.window_ms

        with self._lock_for(user_id):
            history = [ts for ts in self.store.get(user_id) if ts > window_start]
            admitted = len(history) < self.max_requests
            if admitted:
                history.append(now)
            self.store.set(user_id, history)

        if not admitted:
            logger.warning("Rate limit %r exceeded for user %s", self.name, user_id)
            return False

        # Runs after the user's lock is released; the sweep takes each
        # user's lock in turn
        if self.rng() < self.cleanup_probability:
            self.compact(now)
        return True

    def remaining(self, user_id: str, now: Optional[float] = None) -> int:
        if now is None:
            now = self.clock()
        window_start = now - self.window_ms
        with self._lock_for(user_id):
            used = sum(1 for ts in self.store.get(user_id) if ts > window_start)
        return max(0, self.max_requests - used)

    def compact(self, now: Optional[float] = None) -> int:
        """Drop entries older than two windows; returns users removed"""
        if now is None:
            now = self.clock()
        cutoff = now - self.window_ms * 2
        removed = 0

        for user_id in list(self.store.keys()):
            with self._lock_for(user_id):
                kept = [ts for ts in self.store.get(user_id) if ts > cutoff]
                if kept:
                    self.store.set(user_id, kept)
                else:
                    self.store.delete(user_id)
                    removed += 1

        if removed:
            logger.debug("Rate limiter %r compacted %d idle users", self.name, removed)
        return removed
