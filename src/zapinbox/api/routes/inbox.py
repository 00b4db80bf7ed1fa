"""Read endpoints: thread listing and paginated message history."""

from typing import Any

from fastapi import APIRouter, Depends, Query

from zapinbox.api.deps import get_store
from zapinbox.inbox.store import InboxStore

router = APIRouter(tags=["inbox"])

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


def parse_cursor(raw: str | None) -> int:
    """Numeric offset; anything unparsable or negative restarts at 0."""
    try:
        value = int(raw) if raw is not None else 0
    except ValueError:
        return 0
    return max(0, value)


def parse_page_size(raw: str | None) -> int:
    try:
        value = int(raw) if raw is not None else DEFAULT_PAGE_SIZE
    except ValueError:
        return DEFAULT_PAGE_SIZE
    if value <= 0:
        return DEFAULT_PAGE_SIZE
    return min(value, MAX_PAGE_SIZE)


@router.get("/threads")
def list_threads(store: InboxStore = Depends(get_store)) -> list[dict[str, Any]]:
    """Conversation summaries, most recent activity first."""
    return [summary.to_dict() for summary in store.list_conversations()]


@router.get("/messages")
def list_messages(
    chat_id: str = Query("", alias="chatId"),
    cursor: str | None = Query(None),
    page_size: str | None = Query(None, alias="pageSize"),
    store: InboxStore = Depends(get_store),
) -> dict[str, Any]:
    """One newest-first page of a conversation's messages.

    nextCursor is a string offset, or null once the page reaches the end.
    """
    page = store.page_messages(chat_id, parse_cursor(cursor), parse_page_size(page_size))
    return {
        "items": [record.to_dict() for record in page.items],
        "nextCursor": str(page.next_cursor) if page.next_cursor is not None else None,
    }
