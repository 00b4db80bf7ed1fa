"""Canonical conversation and message records."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Preview:
    """Truncated summary of the latest message, shown in thread listings."""

    kind: str
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "text": self.text}


@dataclass(frozen=True)
class MessageRecord:
    """One chat message. Immutable once stored."""

    id: str
    conversation_id: str
    from_me: bool
    kind: str  # "chat", "image", "document", ...
    text: str
    media_ref: str | None
    ts: int  # ms since epoch

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "fromMe": self.from_me,
            "kind": self.kind,
            "text": self.text,
            "mediaRef": self.media_ref,
            "ts": self.ts,
        }


@dataclass(frozen=True)
class ConversationUpdate:
    """Partial summary fields carried by an upsert. None means "not supplied"."""

    name: str | None = None
    phone: str | None = None
    last_ts: int | None = None
    avatar_ref: str | None = None
    preview: Preview | None = None


@dataclass(frozen=True)
class ConversationSummary:
    """Merged view of one conversation.

    Replaced wholesale on every upsert, so readers holding a reference never
    observe a half-applied merge.
    """

    id: str
    name: str
    phone: str
    last_ts: int = 0
    avatar_ref: str | None = None
    preview: Preview | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "lastTs": self.last_ts,
            "unread": 0,
            "preview": (self.preview or Preview(kind="chat", text="")).to_dict(),
            "avatarRef": self.avatar_ref,
        }


@dataclass(frozen=True)
class MessagePage:
    """A slice of a conversation log, newest first."""

    items: list[MessageRecord]
    next_cursor: int | None
