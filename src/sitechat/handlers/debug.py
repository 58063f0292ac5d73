"""Introspection handlers for GET /v1/debug/sites and GET /v1/debug/logs."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sitechat.state import AppState


def list_sites(state: AppState) -> dict:
    summaries = state.store.summaries()
    return {
        "ok": True,
        "sites": [s.model_dump(mode="json", by_alias=True) for s in summaries],
    }


def list_logs(state: AppState) -> dict:
    entries = state.chat_log.entries()
    return {
        "ok": True,
        "count": len(entries),
        "logs": [e.model_dump(mode="json", by_alias=True) for e in entries],
    }
