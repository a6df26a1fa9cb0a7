"""Validate public share links and extract their opaque token."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import unquote, urlsplit

from .errors import ValidationError, ValidationErrorKind
from .models import ShareReference
from .settings import ShareLinkSettings

RE_SHARE_TOKEN = re.compile(r"[A-Za-z0-9_-]+")
RE_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
SHARE_SCHEMES = ("http", "https")
SHARE_PATH_PREFIX = "share"


def _not_a_share_link() -> ValidationError:
    return ValidationError(ValidationErrorKind.NOT_A_SHARE_LINK)


def _extract_token(path: str) -> Optional[str]:
    """Return the raw token when ``path`` is ``/share/<token>[/]``."""

    if path.endswith("/"):
        path = path[:-1]
    segments = path.split("/")
    if len(segments) != 3 or segments[0] != "":
        return None
    if segments[1] != SHARE_PATH_PREFIX or not segments[2]:
        return None
    return segments[2]


def validate(
    value: str, settings: Optional[ShareLinkSettings] = None
) -> ShareReference:
    """Return the share reference for ``value`` or raise ValidationError."""

    resolved = settings or ShareLinkSettings()
    candidate = (value or "").strip()
    if not candidate:
        raise ValidationError(ValidationErrorKind.EMPTY)

    # urlsplit silently drops tabs and newlines, so reject them up front.
    if RE_CONTROL_CHARS.search(candidate):
        raise _not_a_share_link()

    try:
        parsed = urlsplit(candidate)
        host = (parsed.hostname or "").lower()
    except ValueError as exc:
        raise _not_a_share_link() from exc

    if parsed.scheme.lower() not in SHARE_SCHEMES:
        raise _not_a_share_link()
    if host not in {known.lower() for known in resolved.hosts}:
        raise _not_a_share_link()

    raw_token = _extract_token(parsed.path)
    if raw_token is None:
        raise _not_a_share_link()

    token = unquote(raw_token)
    if not RE_SHARE_TOKEN.fullmatch(token):
        raise _not_a_share_link()

    return ShareReference(share_id=token, source_url=candidate)


__all__ = ["RE_SHARE_TOKEN", "validate"]
