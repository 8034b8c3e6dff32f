from __future__ import annotations

import logging
import sys
import time
from collections import OrderedDict
from collections.abc import Mapping
from typing import Any, Callable, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

__all__ = ["ResultCache", "estimate_size"]


def estimate_size(obj: Any, _seen: Optional[set] = None) -> int:
    """Approximate memory footprint of ``obj`` in bytes (containers are followed)."""
    seen = _seen if _seen is not None else set()
    if id(obj) in seen:
        return 0
    seen.add(id(obj))

    size = sys.getsizeof(obj)
    if isinstance(obj, (str, bytes, bytearray)):
        return size
    if isinstance(obj, Mapping):
        size += sum(estimate_size(k, seen) + estimate_size(v, seen) for k, v in obj.items())
    elif isinstance(obj, (list, tuple, set, frozenset)):
        size += sum(estimate_size(item, seen) for item in obj)
    elif hasattr(obj, "__dict__"):
        size += estimate_size(vars(obj), seen)
    return size


class ResultCache:
    """
    Bounded result memoization store (LRU + TTL).

    - ``max_size``: total byte budget. Least recently used entries are evicted until
      the budget holds. A single entry larger than the budget is not stored.
    - ``lifespan``: seconds an entry stays valid after being set. Expired entries are
      dropped on access and before each insertion.
    - ``max_entries``: optional bound on the number of entries.

    The store is synchronous. It is only shared within a session, whose actions run
    on a single event loop.
    """

    def __init__(
        self,
        max_size: int,
        lifespan: float,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not isinstance(max_size, int) or max_size <= 0:
            raise ValueError("max_size must be a positive integer (bytes)")
        if lifespan <= 0:
            raise ValueError("lifespan must be positive (seconds)")
        if max_entries is not None and (not isinstance(max_entries, int) or max_entries <= 0):
            raise ValueError("max_entries must be a positive integer or None")

        self._max_size = max_size
        self._lifespan = float(lifespan)
        self._max_entries = max_entries
        self._clock = clock
        # key -> (value, size, expires_at)
        self._entries: "OrderedDict[Hashable, Tuple[Any, int, float]]" = OrderedDict()
        self._total_size = 0

    # ---- properties ---- #
    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def lifespan(self) -> float:
        return self._lifespan

    @property
    def max_entries(self) -> Optional[int]:
        return self._max_entries

    @property
    def total_size(self) -> int:
        return self._total_size

    # ---- mapping API ---- #
    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._live_entry(key)
        if entry is None:
            return default
        self._entries.move_to_end(key)
        return entry[0]

    def has(self, key: Hashable) -> bool:
        return self._live_entry(key) is not None

    def set(self, key: Hashable, value: Any) -> bool:
        """Store ``value`` under ``key``. Returns False when the value exceeds the budget."""
        size = estimate_size(value)
        self.delete(key)
        if size > self._max_size:
            logger.debug(f"ResultCache: entry {key!r} ({size} bytes) exceeds the cache size, not stored")
            return False

        self._purge_expired()
        self._entries[key] = (value, size, self._clock() + self._lifespan)
        self._total_size += size

        while self._total_size > self._max_size or (
            self._max_entries is not None and len(self._entries) > self._max_entries
        ):
            evicted, (_, evicted_size, _) = self._entries.popitem(last=False)
            self._total_size -= evicted_size
            logger.debug(f"ResultCache: evicted {evicted!r}")
        return True

    def delete(self, key: Hashable) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._total_size -= entry[1]
        return True

    def flush(self) -> None:
        self._entries.clear()
        self._total_size = 0

    def keys(self) -> list:
        self._purge_expired()
        return list(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._entries)

    def __repr__(self) -> str:
        return f"<ResultCache entries={len(self._entries)} size={self._total_size}/{self._max_size}>"

    # ---- helpers ---- #
    def _live_entry(self, key: Hashable) -> Optional[Tuple[Any, int, float]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry[2] <= self._clock():
            self.delete(key)
            return None
        return entry

    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [k for k, (_, _, expires_at) in self._entries.items() if expires_at <= now]:
            self.delete(key)
