from __future__ import annotations

from sitechat.models.chat import (
    Action,
    ChatLogEntry,
    ChatReply,
    ChatRequest,
    ReplyMeta,
    Source,
    SyncRequest,
    SyncResult,
)
from sitechat.models.site import Document, SiteIndex, SiteSummary

__all__ = [
    # site
    "Document",
    "SiteIndex",
    "SiteSummary",
    # chat
    "ChatRequest",
    "ChatReply",
    "Action",
    "Source",
    "ReplyMeta",
    "ChatLogEntry",
    # sync
    "SyncRequest",
    "SyncResult",
]
