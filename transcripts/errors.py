"""Error taxonomy surfaced by the share download pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ShareSaverError(Exception):
    """Base class for every classified pipeline failure."""


class ValidationErrorKind(str, Enum):
    EMPTY = "empty"
    NOT_A_SHARE_LINK = "not_a_share_link"


class FetchErrorKind(str, Enum):
    UNREACHABLE = "unreachable"
    NOT_FOUND_OR_PRIVATE = "not_found_or_private"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    UNEXPECTED_SHAPE = "unexpected_shape"


VALIDATION_MESSAGES: dict[ValidationErrorKind, str] = {
    ValidationErrorKind.EMPTY: "Enter a share link.",
    ValidationErrorKind.NOT_A_SHARE_LINK: (
        "This does not look like a public conversation share link."
    ),
}

FETCH_MESSAGES: dict[FetchErrorKind, str] = {
    FetchErrorKind.UNREACHABLE: "The share service could not be reached.",
    FetchErrorKind.NOT_FOUND_OR_PRIVATE: (
        "The conversation was not found or is no longer shared publicly."
    ),
    FetchErrorKind.RATE_LIMITED: (
        "Too many requests; wait a moment and try again."
    ),
    FetchErrorKind.TIMEOUT: "The share service took too long to respond.",
    FetchErrorKind.UNEXPECTED_SHAPE: (
        "The share service returned data in an unexpected format."
    ),
}


class ValidationError(ShareSaverError):
    """Raised when user input is not a usable share link."""

    def __init__(
        self, kind: ValidationErrorKind, message: Optional[str] = None
    ) -> None:
        self.kind = kind
        super().__init__(message or VALIDATION_MESSAGES[kind])


class FetchError(ShareSaverError):
    """Raised when a conversation cannot be retrieved or understood."""

    def __init__(
        self,
        kind: FetchErrorKind,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.status_code = status_code
        super().__init__(message or FETCH_MESSAGES[kind])

    @property
    def retryable(self) -> bool:
        """Return True for transient network failures only."""

        return self.kind is FetchErrorKind.UNREACHABLE


class DownloadCancelled(ShareSaverError):
    """Raised when a newer request supersedes an in-flight download."""

    def __init__(
        self, message: str = "Download superseded by a newer request."
    ) -> None:
        super().__init__(message)
