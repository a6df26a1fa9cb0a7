"""Fetch shared conversations by rendering the public share page."""

# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Literal, Optional

try:
    from playwright.sync_api import (  # type: ignore
        Browser,
        Error as PlaywrightError,
        TimeoutError as PlaywrightTimeoutError,
        sync_playwright,
    )
except ImportError as exc:  # pragma: no cover - surfacing missing dependency
    raise SystemExit(
        "Missing dependency 'playwright'. Install with pip install playwright "
        "&& playwright install"
    ) from exc

from .errors import FetchError, FetchErrorKind
from .fetcher import classify_status
from .models import Conversation, ShareReference
from .page import parse_share_page
from .settings import FetchSettings

WaitUntilLiteral = Literal["commit", "domcontentloaded", "load", "networkidle"]
DEFAULT_WAIT_UNTIL: WaitUntilLiteral = "networkidle"


@contextmanager
def _launch_browser() -> Iterator[Browser]:
    """Context manager that yields a headless Chromium browser instance."""

    with sync_playwright() as playwright:  # type: ignore[misc]
        browser: Browser = playwright.chromium.launch(headless=True)
        try:
            yield browser
        finally:
            browser.close()


class RenderedPageFetcher:
    """Load the share page once in headless Chromium and parse its HTML.

    A new browser context is used per call so cookies and cached responses
    from earlier fetches never leak into a later one.
    """

    def __init__(
        self,
        settings: Optional[FetchSettings] = None,
        *,
        wait_until: WaitUntilLiteral = DEFAULT_WAIT_UNTIL,
    ) -> None:
        self.settings = settings or FetchSettings()
        self.wait_until = wait_until

    def fetch(self, ref: ShareReference) -> Conversation:
        """Return the conversation behind ``ref`` or raise FetchError."""

        html = self._render(ref)
        return parse_share_page(
            html,
            source_url=ref.source_url,
            share_id=ref.share_id,
        )

    def _render(self, ref: ShareReference) -> str:
        url = self.settings.page_url.format(share_id=ref.share_id)
        try:
            with _launch_browser() as browser:
                context: Any = browser.new_context(
                    user_agent=self.settings.user_agent,
                    extra_http_headers={"Cache-Control": "no-cache"},
                )
                try:
                    page = context.new_page()
                    response = page.goto(
                        url,
                        wait_until=self.wait_until,
                        timeout=self.settings.timeout_ms,
                    )
                    if response is not None:
                        kind = classify_status(response.status)
                        if kind is not None:
                            raise FetchError(
                                kind, status_code=response.status
                            )
                    return str(page.content())
                finally:
                    context.close()
        except PlaywrightTimeoutError as exc:
            raise FetchError(FetchErrorKind.TIMEOUT) from exc
        except PlaywrightError as exc:
            raise FetchError(
                FetchErrorKind.UNREACHABLE,
                f"The share page could not be loaded: {exc}",
            ) from exc


__all__ = ["RenderedPageFetcher"]
