"""Application state container.

AppState owns every piece of mutable per-process state: the site index,
the rate-limit table, the chat log and in-flight syncs. It is created once
per app (see ``server.create_app``) and passed to every handler, so tests
can run several isolated instances side by side.

The HTTP client and fetcher are attached by the server lifespan; tests
attach their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sitechat.chatlog import ChatLog
from sitechat.ratelimit import FixedWindowRateLimiter
from sitechat.store import SiteStore

if TYPE_CHECKING:
    import asyncio

    import httpx

    from sitechat.config import Settings
    from sitechat.models.site import SiteIndex
    from sitechat.protocols import FetcherProtocol, SiteStoreProtocol


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every handler."""

    settings: Settings
    store: SiteStoreProtocol
    rate_limiter: FixedWindowRateLimiter
    chat_log: ChatLog

    # Attached by the lifespan
    http_client: httpx.AsyncClient | None = None
    fetcher: FetcherProtocol | None = None

    # site key -> (base URL, running sync task)
    inflight_syncs: dict[str, tuple[str, asyncio.Task[SiteIndex]]] = field(default_factory=dict)


def build_state(settings: Settings) -> AppState:
    """Create an AppState with fresh in-memory components and no network client."""
    return AppState(
        settings=settings,
        store=SiteStore(cooldown_seconds=settings.sync.cooldown_seconds),
        rate_limiter=FixedWindowRateLimiter(
            max_requests=settings.rate_limit.max_requests,
            window_seconds=settings.rate_limit.window_seconds,
        ),
        chat_log=ChatLog(capacity=settings.chat.log_capacity),
    )
