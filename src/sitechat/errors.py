from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    RATE_LIMITED = "RATE_LIMITED"
    UPSTREAM_FETCH_FAILED = "UPSTREAM_FETCH_FAILED"
    UPSTREAM_STATUS = "UPSTREAM_STATUS"
    UPSTREAM_INVALID_RESPONSE = "UPSTREAM_INVALID_RESPONSE"
    URL_NOT_ALLOWED = "URL_NOT_ALLOWED"


class SiteChatError(Exception):
    """Raised by handlers for all expected failure conditions.

    Caught by server.py and serialised into the JSON error payload with
    ``status_code`` as the HTTP status. Business logic lets it propagate;
    the only place it is caught and absorbed is the chat handler's
    automatic sync step.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "ok": False,
            "error": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "recoverable": self.recoverable,
            "details": self.details,
        }


BODY_EXCERPT_CHARS = 300


class SyncError(SiteChatError):
    """A content sync failed; carries both upstream statuses for diagnostics."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        pages_status: int | None = None,
        posts_status: int | None = None,
        pages_body: str = "",
        posts_body: str = "",
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            suggestion="Check that the site URL is reachable and exposes the /wp-json API.",
            recoverable=True,
            status_code=502,
            details={
                "pagesStatus": pages_status,
                "postsStatus": posts_status,
                "pagesBody": pages_body[:BODY_EXCERPT_CHARS],
                "postsBody": posts_body[:BODY_EXCERPT_CHARS],
            },
        )
        self.pages_status = pages_status
        self.posts_status = posts_status
