"""High-level orchestration: validate, fetch, then render."""

from __future__ import annotations

from typing import Callable, Optional

from .errors import DownloadCancelled
from .fetcher import ConversationFetcher, Fetcher
from .formats import markdown as markdown_format
from .models import RenderedDocument
from .settings import FetchSettings, ShareLinkSettings
from .share_link import validate


def _never_cancelled() -> bool:
    return False


def build_fetcher(settings: Optional[FetchSettings] = None) -> Fetcher:
    """Return the fetcher matching ``settings.strategy``."""

    resolved = settings or FetchSettings()
    if resolved.strategy == "browser":
        # Playwright is only imported when the browser strategy is chosen.
        from .browser import RenderedPageFetcher

        return RenderedPageFetcher(resolved)
    if resolved.strategy == "api":
        return ConversationFetcher(resolved)
    raise ValueError(f"Unknown fetch strategy: {resolved.strategy!r}")


def download_conversation(
    url: str,
    *,
    fetcher: Fetcher,
    link_settings: Optional[ShareLinkSettings] = None,
    is_cancelled: Callable[[], bool] = _never_cancelled,
) -> RenderedDocument:
    """Turn a share URL into a rendered Markdown document.

    Raises ValidationError before any network access, FetchError when the
    conversation cannot be retrieved, and DownloadCancelled when
    ``is_cancelled`` reports that the caller no longer wants the result.
    """

    ref = validate(url, link_settings)
    conversation = fetcher.fetch(ref)
    if is_cancelled():
        raise DownloadCancelled()
    return markdown_format.render(conversation)


__all__ = ["build_fetcher", "download_conversation"]
