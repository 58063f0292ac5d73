"""HTML-to-text normalizer for fetched page and post bodies.

Parses with BeautifulSoup's ``html.parser`` backend. Comments, scripts and
styles are dropped; entities are decoded by the parser. Any angle bracket
left in the text afterwards is removed so the output never contains markup
characters.
"""

from __future__ import annotations

import re

import structlog
from bs4 import BeautifulSoup, Comment
from bs4.builder import ParserRejectedMarkup

log = structlog.get_logger()

_ANGLE_RE = re.compile(r"[<>]")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_html_to_text(raw: str | None) -> str:
    """Convert rendered HTML into a single line of plain text.

    Steps (order matters):
      1. Drop <script> and <style> elements with their content, and comments
      2. Turn <br> into a newline and end every <p> with one
      3. Extract the text, space-separated per node
      4. Drop leftover angle brackets (including decoded &lt; / &gt;)
      5. Collapse whitespace runs and trim

    Markup the parser rejects outright yields ``""``; the caller's minimum
    body length then drops the document.
    """
    if not raw:
        return ""
    try:
        soup = BeautifulSoup(raw, "html.parser")
    except ParserRejectedMarkup:
        log.warning("html_rejected", length=len(raw))
        return ""

    for tag in soup(["script", "style"]):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for p in soup.find_all("p"):
        p.append("\n")

    text = soup.get_text(" ")
    text = _ANGLE_RE.sub(" ", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip()
