"""In-memory request throttle.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a single lock guards the whole registry.
- The window is relative to "now" on every call, not aligned to clock
  boundaries, so up to 2x the limit can pass across two adjacent windows.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable

from webguard.adapters.rate_limit.base import (
    DEFAULT_MAX_REQUESTS,
    DEFAULT_WINDOW_MS,
    AbstractRateLimiter,
    RateLimitResult,
)

logger = logging.getLogger(__name__)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ThrottleEntry:
    """Admission history for one identifier.

    Attributes:
        timestamps: Admission instants in milliseconds, oldest first.
        last_reset: Instant the entry was created (informational only).
    """

    last_reset: int
    timestamps: list[int] = field(default_factory=list)

    def prune(self, now: int, window_ms: int) -> None:
        window_start = now - window_ms
        self.timestamps = [ts for ts in self.timestamps if ts > window_start]


class RequestThrottle(AbstractRateLimiter):
    """Per-identifier admission counter over a trailing window.

    Every decision first drops timestamps that are no longer strictly inside
    the window, then admits only if fewer than ``max_requests`` remain.

    By default the registry keeps one entry per identifier ever seen. Pass
    ``max_entries`` to evict the least recently admitted identifiers, or call
    :meth:`sweep` periodically to drop entries with no live timestamps.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], int] = _wall_clock_ms,
        max_entries: int | None = None,
    ) -> None:
        """Initialize an empty registry.

        Args:
            clock: Time source returning milliseconds.
            max_entries: Optional cap on tracked identifiers (LRU eviction).

        Raises:
            ValueError: If max_entries is given and is not positive.
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._clock = clock
        self._max_entries = max_entries
        self._lock = threading.RLock()
        self._entries: OrderedDict[str, ThrottleEntry] = OrderedDict()

    @property
    def max_entries(self) -> int | None:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._entries

    def _get_or_create(self, identifier: str, now: int) -> ThrottleEntry:
        entry = self._entries.get(identifier)
        if entry is None:
            entry = ThrottleEntry(last_reset=now)
            self._entries[identifier] = entry
            self._evict_overflow()
        else:
            self._entries.move_to_end(identifier)
        return entry

    def _evict_overflow(self) -> None:
        if self._max_entries is None:
            return
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
            logger.debug("throttle.evicted", extra={"tracked": len(self._entries)})

    def check(
        self,
        identifier: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> RateLimitResult:
        """Attempt one admission and report quota metadata.

        Pruning happens on both paths, so a denied call still drops stale
        timestamps from the entry.

        Args:
            identifier: Rate limit subject (client address, user id...).
            max_requests: Admissions allowed per window; 0 always denies.
            window_ms: Window length in milliseconds (must be positive).

        Returns:
            RateLimitResult describing the decision.
        """
        with self._lock:
            now = self._clock()
            entry = self._get_or_create(identifier, now)
            entry.prune(now, window_ms)

            allowed = len(entry.timestamps) < max_requests
            if allowed:
                entry.timestamps.append(now)

            oldest = entry.timestamps[0] if entry.timestamps else now
            reset_ms = oldest + window_ms
            remaining = max(0, max_requests - len(entry.timestamps))

        retry_after = None
        if not allowed:
            retry_after = max(0, math.ceil((reset_ms - now) / 1000))

        return RateLimitResult(
            allowed=allowed,
            limit=max_requests,
            remaining=remaining,
            reset_at=math.ceil(reset_ms / 1000),
            retry_after_seconds=retry_after,
        )

    def try_admit(
        self,
        identifier: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> bool:
        return self.check(identifier, max_requests, window_ms).allowed

    def remaining_quota(
        self,
        identifier: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> int:
        """Return admissions left for ``identifier`` without consuming any.

        Unknown identifiers report the full quota and are not registered.
        """
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return max_requests
            entry.prune(self._clock(), window_ms)
            return max(0, max_requests - len(entry.timestamps))

    def clear(self, identifier: str) -> None:
        with self._lock:
            self._entries.pop(identifier, None)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self, window_ms: int = DEFAULT_WINDOW_MS) -> int:
        """Drop entries with no timestamps left inside ``window_ms``.

        Returns:
            Number of identifiers removed.
        """
        with self._lock:
            now = self._clock()
            stale = []
            for identifier, entry in self._entries.items():
                entry.prune(now, window_ms)
                if not entry.timestamps:
                    stale.append(identifier)
            for identifier in stale:
                del self._entries[identifier]

        if stale:
            logger.info("throttle.swept", extra={"removed": len(stale)})
        return len(stale)
