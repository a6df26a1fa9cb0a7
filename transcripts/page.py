"""Parse rendered share pages into Conversation objects."""

from __future__ import annotations

import json
from typing import Any, Optional

try:
    from bs4 import BeautifulSoup  # type: ignore[import-not-found]
except ImportError as exc:
    raise SystemExit(
        "Missing dependency 'beautifulsoup4'. Install with pip install"
        " beautifulsoup4"
    ) from exc

try:
    from markdownify import markdownify as md  # type: ignore[import-not-found]
except ImportError as exc:
    raise SystemExit(
        "Missing dependency 'markdownify'. Install with pip install"
        " markdownify"
    ) from exc

from .errors import FetchError, FetchErrorKind
from .models import Conversation, Turn
from .payload import parse_share_payload

NEXT_DATA_ID = "__NEXT_DATA__"
ROLE_ATTRIBUTE = "data-message-author-role"
CONTENT_SELECTORS = (".markdown", ".whitespace-pre-wrap")
TITLE_PREFIXES = ("ChatGPT - ", "ChatGPT – ")


def _embedded_payload(soup: Any) -> Optional[dict[str, Any]]:
    """Return serverResponse.data from the Next.js bootstrap script."""

    script = soup.find("script", id=NEXT_DATA_ID)
    if script is None or not script.string:
        return None
    try:
        data = json.loads(script.string)
    except json.JSONDecodeError:
        return None

    cursor: Any = data
    for key in ("props", "pageProps", "serverResponse", "data"):
        if not isinstance(cursor, dict):
            return None
        cursor = cursor.get(key)
    return cursor if isinstance(cursor, dict) else None


def _page_title(soup: Any) -> Optional[str]:
    if soup.title is None or not soup.title.string:
        return None
    title = soup.title.string.strip()
    for prefix in TITLE_PREFIXES:
        if title.startswith(prefix):
            title = title[len(prefix):].strip()
    if not title or title == "ChatGPT":
        return None
    return title


def _element_markdown(element: Any) -> str:
    """Convert a message element's HTML into Markdown."""

    body = element
    for selector in CONTENT_SELECTORS:
        match = element.select_one(selector)
        if match is not None:
            body = match
            break
    return md(str(body), heading_style="ATX").strip()


def parse_share_page(
    html: str,
    *,
    source_url: str,
    share_id: str,
) -> Conversation:
    """Build a Conversation from the HTML of a rendered share page."""

    soup: Any = BeautifulSoup(html, "lxml")

    embedded = _embedded_payload(soup)
    if embedded is not None:
        return parse_share_payload(
            embedded, source_url=source_url, share_id=share_id
        )

    turns: list[Turn] = []
    for element in soup.find_all(attrs={ROLE_ATTRIBUTE: True}):
        content = _element_markdown(element)
        if not content:
            continue
        turns.append(Turn.from_raw_role(element[ROLE_ATTRIBUTE], content))

    if not turns:
        raise FetchError(
            FetchErrorKind.UNEXPECTED_SHAPE,
            "Unexpected share page: no conversation messages found",
        )

    return Conversation(
        turns=tuple(turns),
        source_url=source_url,
        share_id=share_id,
        title=_page_title(soup),
    )


__all__ = ["parse_share_page"]
