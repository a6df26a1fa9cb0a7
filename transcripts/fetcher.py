"""Fetch shared conversations from the backend share endpoint."""

from __future__ import annotations

import time
from typing import Any, Callable, Optional, Protocol

import requests

from .errors import FetchError, FetchErrorKind
from .models import Conversation, ShareReference
from .payload import extract_json_object, parse_share_payload
from .settings import FetchSettings

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}
NOT_FOUND_STATUSES = frozenset({401, 403, 404, 410})
RATE_LIMITED_STATUS = 429
CACHE_BUSTER_PARAM = "_ts"


class Fetcher(Protocol):
    """Anything that turns a ShareReference into a Conversation."""

    def fetch(self, ref: ShareReference) -> Conversation:
        ...


def classify_status(status_code: int) -> Optional[FetchErrorKind]:
    """Map an HTTP status onto a fetch error kind, None for success."""

    if 200 <= status_code < 300:
        return None
    if status_code == RATE_LIMITED_STATUS:
        return FetchErrorKind.RATE_LIMITED
    if status_code in NOT_FOUND_STATUSES or 400 <= status_code < 500:
        return FetchErrorKind.NOT_FOUND_OR_PRIVATE
    return FetchErrorKind.UNREACHABLE


def build_request_url(settings: FetchSettings, share_id: str) -> str:
    """Return the endpoint URL for ``share_id``, proxied when configured."""

    url = settings.api_endpoint.format(share_id=share_id)
    if settings.proxy_prefix:
        url = settings.proxy_prefix + url
    return url


def _session_factory(settings: FetchSettings) -> requests.Session:
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": settings.user_agent,
            "Accept": "application/json",
        }
    )
    return session


class ConversationFetcher:
    """Single-request fetcher for the backend share JSON endpoint.

    Every call builds a fresh request with a cache-busting query parameter
    and no-cache headers. Nothing fetched is kept between calls. At most one
    immediate retry follows an unreachable-network failure; not-found,
    rate-limited, timeout and shape errors are returned immediately.
    """

    def __init__(
        self,
        settings: Optional[FetchSettings] = None,
        *,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or FetchSettings()
        self._session = session or _session_factory(self.settings)
        self._clock = clock

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "ConversationFetcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def fetch(self, ref: ShareReference) -> Conversation:
        """Return the conversation behind ``ref`` or raise FetchError."""

        retries_left = self.settings.retry_budget
        while True:
            try:
                body = self._get(ref)
                break
            except FetchError as exc:
                if not exc.retryable or retries_left <= 0:
                    raise
                retries_left -= 1
                print(f"⚠️ Share fetch failed: {exc}; retrying once")

        payload = extract_json_object(body)
        return parse_share_payload(
            payload,
            source_url=ref.source_url,
            share_id=ref.share_id,
        )

    def _get(self, ref: ShareReference) -> str:
        url = build_request_url(self.settings, ref.share_id)
        params = {CACHE_BUSTER_PARAM: str(int(self._clock()))}
        timeout = self.settings.timeout_seconds
        try:
            response = self._session.get(
                url,
                params=params,
                headers=NO_CACHE_HEADERS,
                timeout=(timeout, timeout),
            )
        except requests.Timeout as exc:
            raise FetchError(FetchErrorKind.TIMEOUT) from exc
        except requests.RequestException as exc:
            raise FetchError(
                FetchErrorKind.UNREACHABLE,
                f"The share service could not be reached: {exc}",
            ) from exc

        kind = classify_status(response.status_code)
        if kind is not None:
            raise FetchError(kind, status_code=response.status_code)

        return response.text


__all__ = [
    "ConversationFetcher",
    "Fetcher",
    "build_request_url",
    "classify_status",
]
