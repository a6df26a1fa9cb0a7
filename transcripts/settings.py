"""Configuration constants for share-link validation and fetching."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

FetchStrategy = Literal["api", "browser"]

DEFAULT_SHARE_HOSTS: tuple[str, ...] = (
    "chatgpt.com",
    "www.chatgpt.com",
    "chat.openai.com",
)
DEFAULT_API_ENDPOINT = "https://chatgpt.com/backend-api/share/{share_id}"
DEFAULT_PAGE_URL = "https://chatgpt.com/share/{share_id}"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 1
MAX_RETRIES_CAP = 1
DEFAULT_USER_AGENT = "Mozilla/5.0"
DEFAULT_STRATEGY: FetchStrategy = "api"


def _default_hosts() -> tuple[str, ...]:
    return DEFAULT_SHARE_HOSTS


@dataclass(slots=True, frozen=True)
class ShareLinkSettings:
    """Hosts accepted as public share-link origins."""

    hosts: tuple[str, ...] = field(default_factory=_default_hosts)


@dataclass(slots=True, frozen=True)
class FetchSettings:
    """Network knobs shared by both fetch strategies.

    ``max_retries`` is clamped to ``MAX_RETRIES_CAP`` by the fetchers so a
    misconfigured value can never turn into a retry storm.
    """

    api_endpoint: str = DEFAULT_API_ENDPOINT
    page_url: str = DEFAULT_PAGE_URL
    proxy_prefix: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    user_agent: str = DEFAULT_USER_AGENT
    strategy: FetchStrategy = DEFAULT_STRATEGY

    @property
    def retry_budget(self) -> int:
        """Return the effective number of retries allowed per fetch."""

        return max(0, min(self.max_retries, MAX_RETRIES_CAP))

    @property
    def timeout_ms(self) -> int:
        """Return the timeout in milliseconds for Playwright calls."""

        return int(self.timeout_seconds * 1000)
