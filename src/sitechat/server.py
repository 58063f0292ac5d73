"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Build AppState and attach the HTTP client / fetcher in the lifespan
- Register routes and middleware
- Start uvicorn
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager, suppress
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

import sitechat.handlers.chat as h_chat
import sitechat.handlers.debug as h_debug
import sitechat.handlers.sync as h_sync
from sitechat import __version__
from sitechat.config import Settings
from sitechat.errors import ErrorCode, SiteChatError
from sitechat.fetcher import Fetcher, build_http_client
from sitechat.schedulers import run_site_refresh_scheduler
from sitechat.state import AppState, build_state
from sitechat.transport import RateLimitMiddleware, run_http_server

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from starlette.requests import Request

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
    """Create and tear down the network resources for the app's lifetime."""
    state: AppState = app.state.sitechat
    owns_client = state.http_client is None

    if owns_client:
        state.http_client = build_http_client(state.settings.sync)
    if state.fetcher is None:
        state.fetcher = Fetcher.from_settings(state.http_client, state.settings.sync)

    refresh_task = asyncio.create_task(run_site_refresh_scheduler(state))
    log.info("server_started", version=__version__, port=state.settings.server.port)

    try:
        yield
    finally:
        refresh_task.cancel()
        with suppress(asyncio.CancelledError):
            await refresh_task
        if owns_client and state.http_client is not None:
            await state.http_client.aclose()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

async def _read_payload(request: Request) -> dict[str, Any]:
    """Parse the JSON body; an empty body counts as ``{}``."""
    body = await request.body()
    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise SiteChatError(
            code=ErrorCode.INVALID_INPUT,
            message=f"Request body is not valid JSON: {exc}",
            suggestion="Send a UTF-8 JSON object body.",
            recoverable=False,
        ) from exc
    if not isinstance(payload, dict):
        raise SiteChatError(
            code=ErrorCode.INVALID_INPUT,
            message="Request body must be a JSON object",
            suggestion="Send a UTF-8 JSON object body.",
            recoverable=False,
        )
    return payload


async def _dispatch(
    request: Request,
    endpoint: str,
    handler: Callable[[dict, AppState], Awaitable[dict]],
) -> JSONResponse:
    state: AppState = request.app.state.sitechat
    try:
        payload = await _read_payload(request)
        return JSONResponse(await handler(payload, state))
    except SiteChatError as exc:
        log.warning(
            "request_error",
            endpoint=endpoint,
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)
    except Exception:
        log.error("request_unexpected_error", endpoint=endpoint, exc_info=True)
        return JSONResponse(
            {"ok": False, "error": "Internal server error", "code": "INTERNAL_ERROR"},
            status_code=500,
        )


async def chat(request: Request) -> JSONResponse:
    return await _dispatch(request, "chat", h_chat.handle)


async def site_sync(request: Request) -> JSONResponse:
    return await _dispatch(request, "site_sync", h_sync.handle)


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"ok": True, "ts": datetime.now(UTC).isoformat()})


async def debug_sites(request: Request) -> JSONResponse:
    return JSONResponse(h_debug.list_sites(request.app.state.sitechat))


async def debug_logs(request: Request) -> JSONResponse:
    return JSONResponse(h_debug.list_logs(request.app.state.sitechat))


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None, state: AppState | None = None) -> Starlette:
    """Build the Starlette app around one AppState.

    Pass ``state`` to share a pre-built state (tests); otherwise a fresh one
    is built from ``settings``.
    """
    if state is None:
        state = build_state(settings or Settings())

    app = Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/v1/chat", chat, methods=["POST"]),
            Route("/v1/site/sync", site_sync, methods=["POST"]),
            Route("/v1/debug/sites", debug_sites, methods=["GET"]),
            Route("/v1/debug/logs", debug_logs, methods=["GET"]),
        ],
        middleware=[
            # Outermost first: preflights and 429s both get CORS headers
            Middleware(
                CORSMiddleware,
                allow_origins=state.settings.server.cors_origins,
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
            ),
            Middleware(RateLimitMiddleware, state=state),
        ],
        lifespan=lifespan,
    )
    app.state.sitechat = state
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)
    run_http_server(create_app(settings), settings)


if __name__ == "__main__":
    main()
