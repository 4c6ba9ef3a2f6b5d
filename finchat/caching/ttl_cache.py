"""
Time-Bounded Caches

Two caches sit in front of the expensive steps of answering a question:
- ResponseCache: final answers per (user, normalized question), short TTL
- ContextCache: aggregated financial snapshots per user, longer TTL

DESIGN DECISION: Eviction is by insertion order, not LRU.
A hit does not refresh an entry's position or age. Financial data
changes, so an answer must not live longer just because it is popular.

Each cache owns its own lock. The read-check-evict-write sequence of
every operation runs inside it; nothing inside the lock does I/O.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Optional, TypeVar

from finchat.models.context import FinancialContext


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value and the clock reading when it was stored."""

    value: V
    created_at: float


class TTLCache(Generic[K, V]):
    """
    Bounded cache with per-entry expiry.

    Args:
        ttl_seconds: Entries older than this are treated as absent
        max_entries: Inserting a new key beyond this evicts the oldest entry
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[K, CacheEntry[V]] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, key: K) -> Optional[V]:
        """Return the cached value, or None if absent or expired (expired entries are evicted)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.created_at > self._ttl:
                del self._entries[key]
                return None
            return entry.value

    def put(self, key: K, value: V) -> None:
        """
        Store a value.

        A new key arriving at a full cache first evicts the single
        oldest-inserted entry. Re-putting an existing key replaces it
        and makes it the newest entry.
        """
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self._max_entries:
                self._entries.popitem(last=False)
            self._entries[key] = CacheEntry(value=value, created_at=self._clock())

    def evict(self, key: K) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        """Raw membership; does not check expiry."""
        with self._lock:
            return key in self._entries


def normalize_question(question: str) -> str:
    """Lower-case and collapse runs of whitespace."""
    return " ".join(question.lower().split())


class ResponseCache:
    """Final answers keyed by (user id, normalized question)."""

    def __init__(
        self,
        ttl_seconds: float = 30.0,
        max_entries: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._cache: TTLCache[tuple[str, str], str] = TTLCache(
            ttl_seconds, max_entries, clock
        )

    @staticmethod
    def make_key(user_id: str, question: str) -> tuple[str, str]:
        return (user_id, normalize_question(question))

    def get(self, user_id: str, question: str) -> Optional[str]:
        return self._cache.get(self.make_key(user_id, question))

    def put(self, user_id: str, question: str, response: str) -> None:
        self._cache.put(self.make_key(user_id, question), response)

    def evict(self, user_id: str, question: str) -> None:
        self._cache.evict(self.make_key(user_id, question))

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


class ContextCache:
    """Aggregated financial snapshots keyed by user id."""

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._cache: TTLCache[str, FinancialContext] = TTLCache(
            ttl_seconds, max_entries, clock
        )

    def get(self, user_id: str) -> Optional[FinancialContext]:
        return self._cache.get(user_id)

    def put(self, user_id: str, context: FinancialContext) -> None:
        self._cache.put(user_id, context)

    def evict(self, user_id: str) -> None:
        self._cache.evict(user_id)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
