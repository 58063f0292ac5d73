"""Integration test fixtures.

Provides a fully wired AppState with a real httpx client (mocked through
respx in each test) and an ASGI client for the Starlette app.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from sitechat.fetcher import Fetcher
from sitechat.server import create_app
from sitechat.state import build_state

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sitechat.config import Settings
    from sitechat.state import AppState


@pytest.fixture()
async def app_state(settings: Settings) -> AsyncIterator[AppState]:
    """AppState with the network components attached."""
    state = build_state(settings)
    async with httpx.AsyncClient() as client:
        state.http_client = client
        state.fetcher = Fetcher(client)
        yield state


@pytest.fixture()
async def api(app_state: AppState) -> AsyncIterator[httpx.AsyncClient]:
    """Client talking to the app in-process. The lifespan is not run."""
    app = create_app(state=app_state)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as client:
        yield client
