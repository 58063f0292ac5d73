"""Fixed-window request counter keyed by client address."""

from __future__ import annotations

import time
from dataclasses import dataclass

UNKNOWN_CLIENT = "unknown"


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass
class RateLimitDecision:
    """Result of a rate limit check."""

    allowed: bool
    count: int
    retry_after: float


def client_address(forwarded_for: str | None, peer: str | None) -> str:
    """First X-Forwarded-For entry, else the peer address, else ``"unknown"``."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    if peer:
        return peer
    return UNKNOWN_CLIENT


class FixedWindowRateLimiter:
    """At most ``max_requests`` per client per ``window_seconds``.

    Each check reads and writes the entry without awaiting, so on a single
    event loop count and reset time always change together.
    """

    # Expired entries are pruned once the table grows past this size
    PRUNE_THRESHOLD = 10_000

    def __init__(self, max_requests: int = 60, window_seconds: float = 60) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._entries: dict[str, RateLimitEntry] = {}

    def hit(self, key: str, now: float | None = None) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it may proceed."""
        current = time.monotonic() if now is None else now
        entry = self._entries.get(key)

        if entry is None or current >= entry.reset_at:
            if len(self._entries) >= self.PRUNE_THRESHOLD:
                self._prune(current)
            entry = RateLimitEntry(count=1, reset_at=current + self.window_seconds)
            self._entries[key] = entry
        else:
            entry.count += 1

        return RateLimitDecision(
            allowed=entry.count <= self.max_requests,
            count=entry.count,
            retry_after=max(entry.reset_at - current, 0.0),
        )

    def reset(self) -> None:
        self._entries.clear()

    def _prune(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now >= entry.reset_at]
        for key in expired:
            del self._entries[key]
