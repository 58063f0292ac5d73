"""Keyword heuristics for the wake phrase and booking intent.

Both predicates are pure and lowercase/trim their input first. False
positives and negatives are expected; these are not classifiers.
"""

from __future__ import annotations

WAKE_PHRASE = "hey jarvis"

BOOKING_KEYWORDS: frozenset[str] = frozenset(
    {"book", "booking", "appointment", "schedule", "reserve", "consultation"}
)


def _normalise(text: str | None) -> str:
    return (text or "").strip().lower()


def is_wake_phrase(text: str | None) -> bool:
    """True for "hey jarvis", ignoring case and trailing "." or "!"."""
    return _normalise(text).rstrip(".!").rstrip() == WAKE_PHRASE


def has_booking_intent(text: str | None) -> bool:
    t = _normalise(text)
    if any(keyword in t for keyword in BOOKING_KEYWORDS):
        return True
    return "call" in t and "book" in t
