"""HTTP transport: rate-limit middleware and the uvicorn runner."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.datastructures import Headers
from starlette.responses import JSONResponse

from sitechat.errors import ErrorCode, SiteChatError
from sitechat.ratelimit import client_address

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Receive, Scope, Send

    from sitechat.config import Settings
    from sitechat.state import AppState

log = structlog.get_logger()

RATE_LIMITED_PATHS: frozenset[str] = frozenset({"/v1/chat", "/v1/site/sync"})
RATE_LIMITED_REPLY = "You're sending messages too quickly. Please wait a moment and try again."


class RateLimitMiddleware:
    """Pure ASGI middleware enforcing the per-client fixed window.

    Runs before routing, so a rejected request never reaches a handler:
    no chat log entry, no sync, no body parsing.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        state: AppState,
        paths: frozenset[str] = RATE_LIMITED_PATHS,
    ) -> None:
        self.app = app
        self.state = state
        self.paths = paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"] in self.paths:
            headers = Headers(scope=scope)
            peer = scope.get("client")
            key = client_address(headers.get("x-forwarded-for"), peer[0] if peer else None)

            decision = self.state.rate_limiter.hit(key)
            if not decision.allowed:
                log.warning("rate_limited", client=key, path=scope["path"], count=decision.count)
                error = SiteChatError(
                    code=ErrorCode.RATE_LIMITED,
                    message="Rate limit exceeded",
                    suggestion="Wait for the current window to reset before retrying.",
                    recoverable=True,
                    status_code=429,
                )
                payload = {**error.to_dict(), "replyText": RATE_LIMITED_REPLY}
                retry_after = max(math.ceil(decision.retry_after), 1)
                response = JSONResponse(
                    payload,
                    status_code=error.status_code,
                    headers={"Retry-After": str(retry_after)},
                )
                await response(scope, receive, send)
                return

        await self.app(scope, receive, send)


def run_http_server(app: ASGIApp, settings: Settings) -> None:
    """Serve the app with uvicorn on the configured host and port."""
    log.info("http_server_starting", host=settings.server.host, port=settings.server.port)
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )
