"""
Tests for rendered share page parsing.

Static HTML stands in for what the headless browser would capture.
"""

import json

import pytest

from conftest import make_message
from transcripts import FetchError, FetchErrorKind, Role
from transcripts.page import parse_share_page

SOURCE = "https://chatgpt.com/share/abc123"

DOM_PAGE = """
<html>
<head><title>ChatGPT - Sorting lists</title></head>
<body>
<main>
  <div data-message-author-role="user">
    <div class="whitespace-pre-wrap">How do I sort a list?</div>
  </div>
  <div data-message-author-role="assistant">
    <div class="markdown prose">
      <p>Use <code>sorted</code>:</p>
      <h2>Example</h2>
      <ul><li>ascending</li><li>descending</li></ul>
    </div>
  </div>
</main>
</body>
</html>
"""


def parse(html):
    return parse_share_page(html, source_url=SOURCE, share_id="abc123")


class TestDomParsing:
    """Pages without embedded data fall back to message elements"""

    def test_turns_in_document_order(self):
        conversation = parse(DOM_PAGE)

        assert [t.role for t in conversation.turns] == [
            Role.USER,
            Role.ASSISTANT,
        ]
        assert conversation.turns[0].content == "How do I sort a list?"

    def test_html_converted_to_markdown(self):
        assistant = parse(DOM_PAGE).turns[1].content

        assert "`sorted`" in assistant
        assert "## Example" in assistant
        assert "ascending" in assistant

    def test_title_prefix_stripped(self):
        assert parse(DOM_PAGE).title == "Sorting lists"

    def test_no_messages_fails_closed(self):
        with pytest.raises(FetchError) as exc:
            parse("<html><body><p>Just a moment...</p></body></html>")
        assert exc.value.kind is FetchErrorKind.UNEXPECTED_SHAPE


class TestEmbeddedData:
    """Pages carrying the Next.js bootstrap payload"""

    def test_embedded_payload_preferred(self):
        data = {
            "props": {
                "pageProps": {
                    "serverResponse": {
                        "data": {
                            "title": "Embedded",
                            "linear_conversation": [
                                {"message": make_message("user", ["Hi"])},
                                {"message": make_message(
                                    "assistant", ["Hello!"])},
                            ],
                        }
                    }
                }
            }
        }
        html = (
            '<html><head><script id="__NEXT_DATA__" type="application/json">'
            + json.dumps(data)
            + "</script></head><body>"
            + '<div data-message-author-role="user">ignored</div>'
            + "</body></html>"
        )

        conversation = parse(html)

        assert conversation.title == "Embedded"
        assert [t.content for t in conversation.turns] == ["Hi", "Hello!"]

    def test_unrelated_next_data_falls_back_to_dom(self):
        html = DOM_PAGE.replace(
            "<head>",
            '<head><script id="__NEXT_DATA__">{"props": {}}</script>',
        )

        assert len(parse(html).turns) == 2
