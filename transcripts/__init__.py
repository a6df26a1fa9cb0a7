"""Share-link download pipeline: validate, fetch, and render transcripts."""

from .errors import (
    DownloadCancelled,
    FetchError,
    FetchErrorKind,
    ShareSaverError,
    ValidationError,
    ValidationErrorKind,
)
from .fetcher import ConversationFetcher
from .formats.markdown import read_role_sequence, render, suggest_filename
from .models import Conversation, RenderedDocument, Role, ShareReference, Turn
from .pipeline import build_fetcher, download_conversation
from .session import DownloadSession
from .settings import FetchSettings, ShareLinkSettings
from .share_link import validate

__all__ = [
    "Conversation",
    "ConversationFetcher",
    "DownloadCancelled",
    "DownloadSession",
    "FetchError",
    "FetchErrorKind",
    "FetchSettings",
    "RenderedDocument",
    "Role",
    "ShareLinkSettings",
    "ShareReference",
    "ShareSaverError",
    "Turn",
    "ValidationError",
    "ValidationErrorKind",
    "build_fetcher",
    "download_conversation",
    "read_role_sequence",
    "render",
    "suggest_filename",
    "validate",
]
