"""
Tests for share payload parsing.

Covers linear and tree payloads, content flattening, role handling and the
fail-closed behaviour on malformed data.
"""

from datetime import datetime, timezone

import pytest

from conftest import make_message
from transcripts import FetchError, FetchErrorKind, Role
from transcripts.payload import (
    content_to_text,
    extract_json_object,
    parse_share_payload,
)

SOURCE = "https://chatgpt.com/share/abc123"


def parse(payload):
    return parse_share_payload(payload, source_url=SOURCE, share_id="abc123")


def assert_shape_error(payload):
    with pytest.raises(FetchError) as exc:
        parse(payload)
    assert exc.value.kind is FetchErrorKind.UNEXPECTED_SHAPE


class TestLinearPayload:
    """Payloads carrying linear_conversation"""

    def test_turns_in_server_order(self, demo_payload):
        """Visible messages become turns in order"""
        conversation = parse(demo_payload)

        assert [t.role for t in conversation.turns] == [
            Role.USER,
            Role.ASSISTANT,
        ]
        assert [t.content for t in conversation.turns] == ["Hi", "Hello!"]
        assert conversation.title == "Demo"
        assert conversation.source_url == SOURCE
        assert conversation.share_id == "abc123"

    def test_missing_title_is_none(self, demo_payload):
        """Blank titles are dropped rather than rendered"""
        demo_payload["title"] = "   "

        assert parse(demo_payload).title is None

    def test_unknown_role_preserved_as_other(self, demo_payload):
        """Unknown authors keep their literal role"""
        demo_payload["linear_conversation"].append(
            {"message": make_message("tool", ["search results"])}
        )

        turn = parse(demo_payload).turns[-1]

        assert turn.role is Role.OTHER
        assert turn.raw_role == "tool"
        assert turn.label == "tool"

    def test_visible_system_message_kept(self, demo_payload):
        """System messages with content are not dropped"""
        demo_payload["linear_conversation"].insert(
            2, {"message": make_message("system", ["Be brief."])}
        )

        roles = [t.role for t in parse(demo_payload).turns]

        assert roles == [Role.SYSTEM, Role.USER, Role.ASSISTANT]

    def test_create_time_becomes_utc_timestamp(self):
        """Epoch seconds are converted to aware datetimes"""
        payload = {
            "linear_conversation": [
                {"message": make_message("user", ["Hi"], create_time=0)}
            ]
        }

        turn = parse(payload).turns[0]

        assert turn.timestamp == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_duplicate_content_not_collapsed(self):
        """Identical consecutive turns are each kept"""
        payload = {
            "linear_conversation": [
                {"message": make_message("user", ["again"])},
                {"message": make_message("user", ["again"])},
            ]
        }

        assert len(parse(payload).turns) == 2


class TestMappingPayload:
    """Payloads carrying a message tree"""

    def test_follows_current_branch(self, mapping_payload):
        """Only the branch ending at current_node is used"""
        contents = [t.content for t in parse(mapping_payload).turns]

        assert contents == ["Question", "Answer", "Follow-up", "Final"]

    def test_without_current_node_uses_first_children(self, mapping_payload):
        """Missing current_node falls back to the first-child chain"""
        del mapping_payload["current_node"]

        contents = [t.content for t in parse(mapping_payload).turns]

        assert contents == ["Question", "Discarded"]

    def test_dangling_current_node(self, mapping_payload):
        """A current_node absent from mapping fails closed"""
        mapping_payload["current_node"] = "missing"

        assert_shape_error(mapping_payload)

    def test_cycle_detected(self, mapping_payload):
        """Parent cycles fail closed instead of looping"""
        mapping_payload["mapping"]["root"]["parent"] = "a2"

        assert_shape_error(mapping_payload)


class TestContentFlattening:
    """content_to_text for the content types seen in shares"""

    def test_parts_joined_with_blank_line(self):
        content = {"content_type": "text", "parts": ["one", "two"]}

        assert content_to_text(content) == "one\n\ntwo"

    def test_multimodal_parts(self):
        content = {
            "content_type": "multimodal_text",
            "parts": [
                {"content_type": "image_asset_pointer",
                 "asset_pointer": "file-service://file-1"},
                "What is this?",
            ],
        }

        assert content_to_text(content) == (
            "[image: file-service://file-1]\n\nWhat is this?"
        )

    def test_code_content_fenced(self):
        content = {
            "content_type": "code",
            "language": "python",
            "text": "print('hi')\n",
        }

        assert content_to_text(content) == "```python\nprint('hi')\n```"

    def test_code_with_unknown_language(self):
        content = {"content_type": "code", "language": "unknown", "text": "x"}

        assert content_to_text(content) == "```\nx\n```"

    def test_result_field(self):
        content = {"content_type": "tether_browsing_display", "result": "ok"}

        assert content_to_text(content) == "ok"

    def test_unrecognized_content_degrades_to_json(self):
        """Unknown shapes are kept as a JSON block, not dropped"""
        content = {"content_type": "future_widget", "value": 3}

        text = content_to_text(content)

        assert text.startswith("```json\n")
        assert '"value": 3' in text
        assert text.endswith("\n```")


class TestFailClosed:
    """Malformed payloads never produce a partial conversation"""

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            "text",
            {},
            {"title": "No messages"},
            {"linear_conversation": "nope"},
            {"linear_conversation": [1]},
            {"linear_conversation": []},
            {"mapping": []},
        ],
    )
    def test_bad_structure(self, payload):
        assert_shape_error(payload)

    def test_bad_message_after_good_ones(self, demo_payload):
        """One malformed message rejects the whole transcript"""
        demo_payload["linear_conversation"].append(
            {"message": {"author": "user", "content": {}}}
        )

        assert_shape_error(demo_payload)

    def test_missing_role(self, demo_payload):
        demo_payload["linear_conversation"].append(
            {"message": {"author": {}, "content": {"parts": ["x"]}}}
        )

        assert_shape_error(demo_payload)

    def test_text_without_parts(self, demo_payload):
        demo_payload["linear_conversation"].append(
            {"message": make_message("user", content={"content_type": "text"})}
        )

        assert_shape_error(demo_payload)

    def test_only_hidden_messages(self):
        payload = {
            "linear_conversation": [
                {"message": make_message("system", ["x"], hidden=True)}
            ]
        }

        assert_shape_error(payload)


class TestExtractJsonObject:
    """Decoding bodies returned directly or via a reader proxy"""

    def test_plain_json(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_proxy_preamble(self):
        body = (
            "Title: share\n\nURL Source: https://chatgpt.com/backend-api/x\n\n"
            'Markdown Content:\n{"title": "Demo", "mapping": {}}\n'
        )

        assert extract_json_object(body) == {"title": "Demo", "mapping": {}}

    @pytest.mark.parametrize("body", ["", "<html></html>", "[1, 2]", "{bad"])
    def test_not_an_object(self, body):
        with pytest.raises(FetchError) as exc:
            extract_json_object(body)
        assert exc.value.kind is FetchErrorKind.UNEXPECTED_SHAPE
