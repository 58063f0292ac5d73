from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Request and response bodies use camelCase on the wire.
_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(BaseModel):
    model_config = _WIRE

    text: str = Field(default="", max_length=4000)
    site_id: str | None = None
    domain: str | None = None
    session_id: str | None = None
    booking_url: str | None = None
    page_url: str | None = None
    site_url: str | None = None

    @field_validator("text", mode="before")
    @classmethod
    def null_text_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class Action(BaseModel):
    model_config = _WIRE

    type: Literal["open_url"] = "open_url"
    url: str


class Source(BaseModel):
    model_config = _WIRE

    title: str
    url: str


class ReplyMeta(BaseModel):
    model_config = _WIRE

    learned: bool
    site_key: str
    updated_at: datetime | None = None
    found: int | None = None


class ChatReply(BaseModel):
    model_config = _WIRE

    reply_text: str
    actions: list[Action] | None = None
    sources: list[Source] | None = None
    meta: ReplyMeta | None = None


class SyncRequest(BaseModel):
    model_config = _WIRE

    site_url: str = Field(min_length=1, max_length=2048)
    site_id: str | None = None
    domain: str | None = None


class SyncResult(BaseModel):
    model_config = _WIRE

    ok: bool = True
    site_key: str
    count: int
    updated_at: datetime


class ChatLogEntry(BaseModel):
    """One truncated chat interaction kept for debugging."""

    model_config = _WIRE

    ts: datetime
    site_key: str
    session_id: str  # First 12 chars
    text: str  # First 200 chars
    page_url: str  # First 300 chars
