"""Bounded in-memory log of recent chat interactions, for debugging only."""

from __future__ import annotations

from collections import deque
from datetime import UTC, datetime

from sitechat.models.chat import ChatLogEntry

SESSION_ID_CHARS = 12
TEXT_CHARS = 200
PAGE_URL_CHARS = 300


class ChatLog:
    """Ring buffer: appending past ``capacity`` evicts the oldest entry."""

    def __init__(self, capacity: int = 200) -> None:
        self._entries: deque[ChatLogEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def record(
        self,
        site_key: str,
        session_id: str | None,
        text: str | None,
        page_url: str | None,
    ) -> ChatLogEntry:
        entry = ChatLogEntry(
            ts=datetime.now(UTC),
            site_key=site_key,
            session_id=(session_id or "")[:SESSION_ID_CHARS],
            text=(text or "")[:TEXT_CHARS],
            page_url=(page_url or "")[:PAGE_URL_CHARS],
        )
        self._entries.append(entry)
        return entry

    def entries(self) -> list[ChatLogEntry]:
        """Oldest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
