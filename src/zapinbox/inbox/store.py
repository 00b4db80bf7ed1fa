"""In-memory conversation and message store.

Volatile by design: state lives for the process lifetime only. Writes are
serialized per conversation id; different conversations never contend.
"""

from __future__ import annotations

import threading
from dataclasses import replace

from .extractor import digits_only, local_part
from .models import ConversationSummary, ConversationUpdate, MessagePage, MessageRecord


class _MessageLog:
    """Insertion-ordered log with O(1) id membership.

    Entries are kept oldest-insert-first and read in reverse, so the
    newest-first contract holds without shifting a list on every push.
    """

    def __init__(self) -> None:
        self._entries: list[MessageRecord] = []
        self._ids: set[str] = set()
        self.sequence = 0

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, record: MessageRecord) -> bool:
        if record.id in self._ids:
            return False
        self._ids.add(record.id)
        self._entries.append(record)
        return True

    def slice(self, start: int, end: int) -> list[MessageRecord]:
        last = len(self._entries) - 1
        return [self._entries[last - i] for i in range(start, end)]


class InboxStore:
    """Conversation summaries plus per-conversation message logs."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._conversations: dict[str, ConversationSummary] = {}
        self._logs: dict[str, _MessageLog] = {}

    def _lock_for(self, conversation_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(conversation_id)
            if lock is None:
                lock = self._locks[conversation_id] = threading.Lock()
            return lock

    def _existing_lock(self, conversation_id: str) -> threading.Lock | None:
        with self._guard:
            return self._locks.get(conversation_id)

    def _log_for(self, conversation_id: str) -> _MessageLog:
        # Caller holds the conversation lock.
        with self._guard:
            log = self._logs.get(conversation_id)
            if log is None:
                log = self._logs[conversation_id] = _MessageLog()
            return log

    def upsert_conversation(
        self, conversation_id: str, update: ConversationUpdate
    ) -> ConversationSummary:
        """Merge update into the stored summary and return the result.

        Supplied fields replace stored ones; omitted fields keep what is
        stored. last_ts never moves backwards, and a preview older than the
        stored activity time does not displace the current one.
        """
        with self._lock_for(conversation_id):
            prev = self._conversations.get(conversation_id)
            if prev is None:
                phone = update.phone or digits_only(local_part(conversation_id))
                prev = ConversationSummary(
                    id=conversation_id,
                    name=update.name or phone or conversation_id,
                    phone=phone,
                )

            phone = update.phone or prev.phone
            preview = prev.preview
            if update.preview is not None and (
                preview is None or update.last_ts is None or update.last_ts >= prev.last_ts
            ):
                preview = update.preview
            merged = replace(
                prev,
                name=update.name or prev.name or phone or conversation_id,
                phone=phone,
                last_ts=max(prev.last_ts, update.last_ts or 0),
                avatar_ref=update.avatar_ref or prev.avatar_ref,
                preview=preview,
            )
            with self._guard:
                self._conversations[conversation_id] = merged
            return merged

    def push_message(self, conversation_id: str, record: MessageRecord) -> bool:
        """Prepend record to the conversation log.

        Returns:
            True if stored, False if a message with the same id was already
            present (no-op).
        """
        with self._lock_for(conversation_id):
            return self._log_for(conversation_id).push(record)

    def next_sequence(self, conversation_id: str) -> int:
        """Monotonic per-conversation counter for synthesized message ids."""
        with self._lock_for(conversation_id):
            log = self._log_for(conversation_id)
            log.sequence += 1
            return log.sequence

    def get_conversation(self, conversation_id: str) -> ConversationSummary | None:
        with self._guard:
            return self._conversations.get(conversation_id)

    def list_conversations(self) -> list[ConversationSummary]:
        """All summaries, most recent activity first."""
        with self._guard:
            snapshot = list(self._conversations.values())
        return sorted(snapshot, key=lambda c: c.last_ts, reverse=True)

    def conversation_count(self) -> int:
        with self._guard:
            return len(self._conversations)

    def message_count(self, conversation_id: str | None = None) -> int:
        if conversation_id is None:
            with self._guard:
                ids = list(self._logs)
            return sum(self.message_count(cid) for cid in ids)
        lock = self._existing_lock(conversation_id)
        if lock is None:
            return 0
        with lock:
            log = self._logs.get(conversation_id)
            return len(log) if log else 0

    def page_messages(self, conversation_id: str, cursor: int = 0, page_size: int = 50) -> MessagePage:
        """Newest-first page starting at offset cursor.

        next_cursor is cursor + page_size while that is still inside the
        log, None once the page reaches the end.
        """
        cursor = max(0, cursor)
        page_size = max(0, page_size)
        lock = self._existing_lock(conversation_id)
        if lock is None:
            return MessagePage(items=[], next_cursor=None)
        with lock:
            log = self._logs.get(conversation_id)
            if log is None:
                return MessagePage(items=[], next_cursor=None)
            total = len(log)
            start = min(cursor, total)
            end = min(cursor + page_size, total)
            items = log.slice(start, end)
        next_cursor = end if end < total else None
        return MessagePage(items=items, next_cursor=next_cursor)
