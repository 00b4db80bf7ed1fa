"""Tests for /threads and /messages."""

import pytest

from zapinbox.api.routes.inbox import parse_cursor, parse_page_size
from zapinbox.inbox.models import ConversationUpdate, MessageRecord, Preview

CHAT = "551199@c.us"


def _fill(store, n: int, chat: str = CHAT) -> None:
    for i in range(n):
        store.push_message(
            chat,
            MessageRecord(
                id=f"m{i}", conversation_id=chat, from_me=i % 2 == 0, kind="chat",
                text=f"t{i}", media_ref=None, ts=1000 + i,
            ),
        )


class TestThreads:
    def test_empty(self, client):
        response = client.get("/threads")
        assert response.status_code == 200
        assert response.json() == []

    def test_summary_shape(self, client, store):
        store.upsert_conversation(
            CHAT,
            ConversationUpdate(
                name="Ana", phone="551199", last_ts=5, avatar_ref="https://pps/a.jpg",
                preview=Preview("image", "[image] beach"),
            ),
        )
        assert client.get("/threads").json() == [
            {
                "id": CHAT,
                "name": "Ana",
                "phone": "551199",
                "lastTs": 5,
                "unread": 0,
                "preview": {"kind": "image", "text": "[image] beach"},
                "avatarRef": "https://pps/a.jpg",
            }
        ]

    def test_default_preview_and_sort(self, client, store):
        store.upsert_conversation("a@c.us", ConversationUpdate(last_ts=1))
        store.upsert_conversation("b@c.us", ConversationUpdate(last_ts=9))
        threads = client.get("/threads").json()
        assert [t["id"] for t in threads] == ["b@c.us", "a@c.us"]
        assert threads[0]["preview"] == {"kind": "chat", "text": ""}
        assert threads[0]["avatarRef"] is None


class TestMessages:
    def test_pages_through_120(self, client, store):
        _fill(store, 120)

        first = client.get("/messages", params={"chatId": CHAT}).json()
        assert len(first["items"]) == 50
        assert first["items"][0]["id"] == "m119"
        assert first["nextCursor"] == "50"

        second = client.get("/messages", params={"chatId": CHAT, "cursor": first["nextCursor"]}).json()
        assert second["nextCursor"] == "100"

        last = client.get("/messages", params={"chatId": CHAT, "cursor": "100"}).json()
        assert len(last["items"]) == 20
        assert last["items"][-1]["id"] == "m0"
        assert last["nextCursor"] is None

    def test_record_shape(self, client, store):
        _fill(store, 1)
        [item] = client.get("/messages", params={"chatId": CHAT}).json()["items"]
        assert item == {
            "id": "m0",
            "conversationId": CHAT,
            "fromMe": True,
            "kind": "chat",
            "text": "t0",
            "mediaRef": None,
            "ts": 1000,
        }

    def test_page_size_param(self, client, store):
        _fill(store, 10)
        page = client.get("/messages", params={"chatId": CHAT, "pageSize": "3"}).json()
        assert [m["id"] for m in page["items"]] == ["m9", "m8", "m7"]
        assert page["nextCursor"] == "3"

    def test_unknown_or_missing_chat(self, client):
        assert client.get("/messages", params={"chatId": "nobody"}).json() == {
            "items": [],
            "nextCursor": None,
        }
        assert client.get("/messages").json() == {"items": [], "nextCursor": None}

    def test_lenient_params(self, client, store):
        _fill(store, 5)
        response = client.get(
            "/messages", params={"chatId": CHAT, "cursor": "abc", "pageSize": "-4"}
        )
        assert response.status_code == 200
        assert len(response.json()["items"]) == 5


@pytest.mark.parametrize(
    "raw, expected", [(None, 0), ("0", 0), ("25", 25), ("-3", 0), ("x", 0), ("1.5", 0)]
)
def test_parse_cursor(raw, expected):
    assert parse_cursor(raw) == expected


@pytest.mark.parametrize(
    "raw, expected", [(None, 50), ("10", 10), ("0", 50), ("nope", 50), ("100000", 500)]
)
def test_parse_page_size(raw, expected):
    assert parse_page_size(raw) == expected
