"""Turn backend share payloads into validated Conversation objects.

The remote format is not under our control, so every structural assumption
is checked. Anything that does not fit raises
``FetchError(UNEXPECTED_SHAPE)``; callers never receive a conversation with
silently missing turns.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping, Optional

from .errors import FetchError, FetchErrorKind
from .models import Conversation, Turn

TEXT_CONTENT_TYPES = ("text", "multimodal_text")
MAX_TREE_DEPTH = 100_000


def _shape_error(detail: str) -> FetchError:
    return FetchError(
        FetchErrorKind.UNEXPECTED_SHAPE,
        f"Unexpected share payload: {detail}",
    )


def extract_json_object(text: str) -> dict[str, Any]:
    """Decode a JSON object, tolerating reader-proxy text around it."""

    stripped = text.strip()
    try:
        decoded = json.loads(stripped)
    except json.JSONDecodeError:
        start = stripped.find("{")
        end = stripped.rfind("}")
        if start == -1 or end <= start:
            raise _shape_error("response body is not JSON") from None
        try:
            decoded = json.loads(stripped[start:end + 1])
        except json.JSONDecodeError as exc:
            raise _shape_error(f"response body is not JSON ({exc})") from exc

    if not isinstance(decoded, dict):
        raise _shape_error("top-level JSON value is not an object")
    return decoded


def _timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _render_part(part: Any) -> str:
    if isinstance(part, str):
        return part
    if isinstance(part, Mapping):
        pointer = part.get("asset_pointer")
        if isinstance(pointer, str) and pointer:
            return f"[image: {pointer}]"
        text = part.get("text")
        if isinstance(text, str):
            return text
    return "[attachment]"


def _fallback_json(content: Mapping[str, Any]) -> str:
    dumped = json.dumps(content, ensure_ascii=False, indent=2, sort_keys=True)
    return f"```json\n{dumped}\n```"


def content_to_text(content: Mapping[str, Any]) -> str:
    """Flatten a message ``content`` object into Markdown text."""

    content_type = content.get("content_type")
    parts = content.get("parts")

    if content_type in TEXT_CONTENT_TYPES or isinstance(parts, list):
        if not isinstance(parts, list):
            raise _shape_error(f"{content_type} content without parts")
        rendered = [_render_part(part) for part in parts]
        return "\n\n".join(chunk for chunk in rendered if chunk.strip())

    if content_type == "code":
        code = content.get("text")
        if not isinstance(code, str):
            raise _shape_error("code content without text")
        language = content.get("language")
        info = ""
        if isinstance(language, str) and language != "unknown":
            info = language
        return f"```{info}\n{code.rstrip()}\n```"

    for key in ("text", "result"):
        value = content.get(key)
        if isinstance(value, str):
            return value

    return _fallback_json(content)


def _is_hidden(message: Mapping[str, Any]) -> bool:
    metadata = message.get("metadata")
    if not isinstance(metadata, Mapping):
        return False
    return bool(metadata.get("is_visually_hidden_from_conversation"))


def message_to_turn(message: Any) -> Optional[Turn]:
    """Convert one backend message into a Turn, or None when invisible."""

    if not isinstance(message, Mapping):
        raise _shape_error("message is not an object")

    author = message.get("author")
    if not isinstance(author, Mapping):
        raise _shape_error("message author is not an object")
    role = author.get("role")
    if not isinstance(role, str) or not role.strip():
        raise _shape_error("message role is missing")

    content = message.get("content")
    if not isinstance(content, Mapping):
        raise _shape_error("message content is not an object")

    if _is_hidden(message):
        return None

    text = content_to_text(content)
    if not text.strip():
        return None

    return Turn.from_raw_role(
        role,
        text,
        timestamp=_timestamp(message.get("create_time")),
    )


def _iter_linear(nodes: Any) -> Iterator[Any]:
    if not isinstance(nodes, list):
        raise _shape_error("linear_conversation is not a list")
    for node in nodes:
        if not isinstance(node, Mapping):
            raise _shape_error("conversation node is not an object")
        yield node.get("message")


def _node(mapping: Mapping[str, Any], node_id: Any) -> Mapping[str, Any]:
    node = mapping.get(node_id) if isinstance(node_id, str) else None
    if not isinstance(node, Mapping):
        raise _shape_error(f"mapping has no node {node_id!r}")
    return node


def _leaf_from_roots(mapping: Mapping[str, Any]) -> Optional[str]:
    """Follow first children from the root when current_node is absent."""

    roots = [
        node_id
        for node_id, node in mapping.items()
        if isinstance(node, Mapping) and not node.get("parent")
    ]
    if not roots:
        return None
    cursor = roots[0]
    for _ in range(MAX_TREE_DEPTH):
        children = _node(mapping, cursor).get("children") or []
        if not isinstance(children, list):
            raise _shape_error("node children is not a list")
        if not children:
            return cursor
        cursor = children[0]
    raise _shape_error("conversation tree is too deep")


def _iter_mapping(mapping: Any, current_node: Any) -> Iterator[Any]:
    if not isinstance(mapping, Mapping):
        raise _shape_error("mapping is not an object")

    leaf = current_node if current_node else _leaf_from_roots(mapping)
    if leaf is None:
        return iter(())

    chain: list[Any] = []
    seen: set[str] = set()
    cursor: Any = leaf
    while cursor:
        if not isinstance(cursor, str):
            raise _shape_error("node reference is not a string")
        if cursor in seen:
            raise _shape_error("conversation tree contains a cycle")
        seen.add(cursor)
        node = _node(mapping, cursor)
        chain.append(node.get("message"))
        cursor = node.get("parent")
    chain.reverse()
    return iter(chain)


def _iter_messages(data: Mapping[str, Any]) -> Iterator[Any]:
    if "linear_conversation" in data:
        return _iter_linear(data["linear_conversation"])
    if "mapping" in data:
        return _iter_mapping(data["mapping"], data.get("current_node"))
    raise _shape_error("no linear_conversation or mapping present")


def _title(data: Mapping[str, Any]) -> Optional[str]:
    title = data.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()
    return None


def parse_share_payload(
    payload: Any,
    *,
    source_url: str,
    share_id: str,
) -> Conversation:
    """Build a Conversation from a decoded backend share payload."""

    if not isinstance(payload, Mapping):
        raise _shape_error("payload is not an object")

    turns: list[Turn] = []
    for message in _iter_messages(payload):
        if message is None:
            continue
        turn = message_to_turn(message)
        if turn is not None:
            turns.append(turn)

    if not turns:
        raise _shape_error("conversation has no visible messages")

    return Conversation(
        turns=tuple(turns),
        source_url=source_url,
        share_id=share_id,
        title=_title(payload),
    )


__all__ = [
    "content_to_text",
    "extract_json_object",
    "message_to_turn",
    "parse_share_payload",
]
