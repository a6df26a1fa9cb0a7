"""Shared dataclasses for share references, transcripts, and documents."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Author of a single turn."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Map a raw role string onto a known role, else ``OTHER``."""

        normalized = value.strip().lower()
        for role in (cls.USER, cls.ASSISTANT, cls.SYSTEM):
            if normalized == role.value:
                return role
        return cls.OTHER


@dataclass(slots=True, frozen=True)
class ShareReference:
    """A validated share link and the opaque token it carries."""

    share_id: str
    source_url: str


@dataclass(slots=True, frozen=True)
class Turn:
    """One message of a conversation.

    ``raw_role`` keeps the literal role string for ``Role.OTHER`` turns so
    unknown authors survive rendering.
    """

    role: Role
    content: str
    timestamp: Optional[datetime] = None
    raw_role: Optional[str] = None

    @classmethod
    def from_raw_role(
        cls,
        raw_role: str,
        content: str,
        timestamp: Optional[datetime] = None,
    ) -> "Turn":
        """Build a turn, keeping the literal role when it is not known."""

        role = Role.parse(raw_role)
        return cls(
            role=role,
            content=content,
            timestamp=timestamp,
            raw_role=raw_role.strip() if role is Role.OTHER else None,
        )

    @property
    def label(self) -> str:
        """Return the human-readable header label for this turn."""

        if self.role is Role.OTHER:
            return self.raw_role or "Other"
        return self.role.value.capitalize()

    @property
    def role_name(self) -> str:
        """Return the role identifier written into turn markers."""

        if self.role is Role.OTHER:
            return self.raw_role or Role.OTHER.value
        return self.role.value


@dataclass(slots=True, frozen=True)
class Conversation:
    """A fetched transcript in server-reported order."""

    turns: tuple[Turn, ...]
    source_url: str
    share_id: str
    title: Optional[str] = None


@dataclass(slots=True, frozen=True)
class RenderedDocument:
    """Final Markdown text and the filename suggested for saving it."""

    text: str
    filename: str
