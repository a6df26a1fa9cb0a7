"""Shared fixtures for share download tests."""

import pytest


def make_message(role, parts=None, *, content=None, create_time=None,
                 hidden=False):
    """Build a backend message dict in the share payload format."""
    message = {
        "author": {"role": role},
        "content": content
        if content is not None
        else {"content_type": "text", "parts": list(parts or [])},
    }
    if create_time is not None:
        message["create_time"] = create_time
    if hidden:
        message["metadata"] = {"is_visually_hidden_from_conversation": True}
    return message


@pytest.fixture
def demo_payload():
    """A linear share payload with a hidden system root and two turns"""
    return {
        "title": "Demo",
        "linear_conversation": [
            {"id": "root"},
            {"id": "sys", "message": make_message("system", [""], hidden=True)},
            {"id": "u1", "message": make_message("user", ["Hi"])},
            {"id": "a1", "message": make_message("assistant", ["Hello!"])},
        ],
    }


@pytest.fixture
def mapping_payload():
    """A tree payload with an abandoned branch"""
    return {
        "title": "Branched",
        "current_node": "a2",
        "mapping": {
            "root": {"id": "root", "parent": None, "children": ["u1"]},
            "u1": {
                "id": "u1",
                "parent": "root",
                "children": ["a1-old", "a1"],
                "message": make_message("user", ["Question"]),
            },
            "a1-old": {
                "id": "a1-old",
                "parent": "u1",
                "children": [],
                "message": make_message("assistant", ["Discarded"]),
            },
            "a1": {
                "id": "a1",
                "parent": "u1",
                "children": ["u2"],
                "message": make_message("assistant", ["Answer"]),
            },
            "u2": {
                "id": "u2",
                "parent": "a1",
                "children": ["a2"],
                "message": make_message("user", ["Follow-up"]),
            },
            "a2": {
                "id": "a2",
                "parent": "u2",
                "children": [],
                "message": make_message("assistant", ["Final"]),
            },
        },
    }
