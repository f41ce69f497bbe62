"""Rate limiter interfaces.

HTTP code depends on this abstraction rather than the in-memory class so a
shared store could replace it without touching routes or middleware.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_MS = 60_000


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single admission attempt.

    Attributes:
        allowed: Whether the request was admitted.
        limit: Max admissions per window.
        remaining: Quota left after this attempt (0 when blocked).
        reset_at: UNIX epoch seconds when the oldest retained admission
            leaves the window (``now`` when nothing is retained).
        retry_after_seconds: Suggested wait in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for per-identifier admission control."""

    @abstractmethod
    def try_admit(
        self,
        identifier: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> bool:
        """Admit or deny one request for ``identifier``."""
        raise NotImplementedError

    @abstractmethod
    def remaining_quota(
        self,
        identifier: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> int:
        """Return how many admissions ``identifier`` has left in the window."""
        raise NotImplementedError

    @abstractmethod
    def check(
        self,
        identifier: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> RateLimitResult:
        """Attempt an admission and describe the outcome for HTTP headers."""
        raise NotImplementedError

    @abstractmethod
    def clear(self, identifier: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear_all(self) -> None:
        raise NotImplementedError
