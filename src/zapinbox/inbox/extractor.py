"""Field extraction - derive canonical message fields from a candidate record.

Every attribute is resolved by probing an ordered list of field aliases seen
across Z-API plans and webhook versions; the first present value wins.
"""

import math
import re
import time
from dataclasses import dataclass
from typing import Any, Callable

from zapinbox.config import DEFAULT_JID_SUFFIX

from .classifier import RECEIVED_CALLBACK, canonical_kind
from .models import ConversationUpdate, MessageRecord, Preview

CHAT_PREVIEW_LIMIT = 120
MEDIA_PREVIEW_LIMIT = 80

# Values past this are already milliseconds (year 2286 in seconds).
_MS_THRESHOLD = 10_000_000_000

_ID_FIELDS = ("chatId", "from", "jid", "remoteJid")
_NAME_FIELDS = ("senderName", "chatName", "name")
_AVATAR_FIELDS = ("senderPhoto", "photo", "profilePicUrl", "avatarUrl")
_KIND_FIELDS = ("messageType", "type")
_MEDIA_FIELDS = ("mediaUrl", "imageUrl", "documentUrl")
_MESSAGE_ID_FIELDS = ("id", "messageId")

_CHAT_ID_FIELDS = ("id", "chatId", "jid")
_CHAT_NAME_FIELDS = ("name", "pushname", "chatName")
_CHAT_AVATAR_FIELDS = ("profilePicUrl", "avatarUrl", "photo")
_CHAT_TS_FIELDS = ("lastMessageTime", "timestamp", "t")

_NON_DIGITS = re.compile(r"\D")


class ExtractionError(Exception):
    """Raised when a candidate carries no derivable conversation id."""

    pass


@dataclass(frozen=True)
class ExtractedMessage:
    """A message record plus the summary fields it contributes."""

    record: MessageRecord
    phone: str
    name: str | None
    avatar_ref: str | None
    preview: Preview

    def conversation_update(self) -> ConversationUpdate:
        return ConversationUpdate(
            name=self.name,
            phone=self.phone or None,
            last_ts=self.record.ts,
            avatar_ref=self.avatar_ref,
            preview=self.preview,
        )


@dataclass(frozen=True)
class ExtractedChat:
    """Summary fields from one entry of an upstream chat listing."""

    conversation_id: str
    phone: str
    name: str | None
    avatar_ref: str | None
    last_ts: int | None

    def conversation_update(self) -> ConversationUpdate:
        return ConversationUpdate(
            name=self.name,
            phone=self.phone or None,
            last_ts=self.last_ts,
            avatar_ref=self.avatar_ref,
        )


def _first(candidate: dict[str, Any], fields: tuple[str, ...]) -> Any:
    for field in fields:
        value = candidate.get(field)
        if value:
            return value
    return None


def _first_str(candidate: dict[str, Any], fields: tuple[str, ...]) -> str | None:
    """Like _first, but skips nested objects and booleans."""
    for field in fields:
        value = candidate.get(field)
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            continue
        if value:
            return str(value)
    return None


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def digits_only(value: Any) -> str:
    return _NON_DIGITS.sub("", str(value))


def local_part(conversation_id: str) -> str:
    return conversation_id.split("@", 1)[0]


def phone_to_chat_id(phone: Any, suffix: str = DEFAULT_JID_SUFFIX) -> str | None:
    digits = digits_only(phone)
    return f"{digits}{suffix}" if digits else None


def now_ms() -> int:
    return int(time.time() * 1000)


def resolve_conversation_id(
    candidate: dict[str, Any], suffix: str = DEFAULT_JID_SUFFIX
) -> str | None:
    explicit = _first_str(candidate, _ID_FIELDS)
    if explicit:
        return explicit
    phone = candidate.get("phone")
    return phone_to_chat_id(phone, suffix) if phone else None


def resolve_phone(candidate: dict[str, Any], conversation_id: str) -> str:
    phone = candidate.get("phone")
    if phone:
        digits = digits_only(phone)
        if digits:
            return digits
    return digits_only(local_part(conversation_id))


def resolve_timestamp(candidate: dict[str, Any]) -> int:
    """Message time in ms.

    `moment` is already in ms; `timestamp` and `t` are seconds. Records
    without either fall back to wall-clock time and are therefore not
    reproducibly ordered.
    """
    moment = _as_number(candidate.get("moment"))
    if moment is not None:
        return int(moment)
    for field in ("timestamp", "t"):
        seconds = _as_number(candidate.get(field))
        if seconds is not None and math.isfinite(seconds * 1000):
            return int(seconds * 1000)
    return now_ms()


def resolve_kind(candidate: dict[str, Any]) -> str:
    if candidate.get("type") == RECEIVED_CALLBACK:
        return canonical_kind(RECEIVED_CALLBACK)
    explicit = _first_str(candidate, _KIND_FIELDS)
    if explicit:
        return canonical_kind(explicit)
    if candidate.get("imageUrl"):
        return "image"
    if candidate.get("documentUrl"):
        return "document"
    return "chat"


def resolve_text(candidate: dict[str, Any]) -> str:
    body = candidate.get("body")
    if body and isinstance(body, str):
        return body
    text = candidate.get("text")
    if isinstance(text, str) and text:
        return text
    if isinstance(text, dict):
        nested = text.get("message") or text.get("caption")
        if nested and isinstance(nested, str):
            return nested
    caption = candidate.get("caption")
    if caption and isinstance(caption, str):
        return caption
    return ""


def resolve_message_id(
    candidate: dict[str, Any],
    conversation_id: str,
    ts: int,
    sequence: Callable[[str], int] | None = None,
) -> str:
    explicit = _first_str(candidate, _MESSAGE_ID_FIELDS)
    if explicit:
        return explicit
    key = candidate.get("key")
    if isinstance(key, dict) and key.get("id"):
        return str(key["id"])
    # No upstream id: the sequence keeps same-millisecond messages apart.
    if sequence is None:
        return f"{conversation_id}-{ts}"
    return f"{conversation_id}-{ts}-{sequence(conversation_id)}"


def build_preview(kind: str, text: str) -> Preview:
    """Listing preview; the stored record keeps the full text."""
    if kind == "chat":
        return Preview(kind=kind, text=text[:CHAT_PREVIEW_LIMIT])
    return Preview(kind=kind, text=f"[{kind}] {text[:MEDIA_PREVIEW_LIMIT]}")


def extract(
    candidate: dict[str, Any],
    conversation_id: str | None = None,
    sequence: Callable[[str], int] | None = None,
    suffix: str = DEFAULT_JID_SUFFIX,
) -> ExtractedMessage:
    """Derive a canonical message from a classified candidate.

    Args:
        candidate: Raw record produced by the normalizer or a backfill page.
        conversation_id: Known conversation (backfill); overrides the
            record's own identity fields.
        sequence: Per-conversation counter used for synthesized ids.
        suffix: Domain appended when the id is derived from a bare phone.

    Raises:
        ExtractionError: If no conversation id can be derived.
    """
    chat_id = conversation_id or resolve_conversation_id(candidate, suffix)
    if not chat_id:
        raise ExtractionError("no conversation id")

    ts = resolve_timestamp(candidate)
    kind = resolve_kind(candidate)
    text = resolve_text(candidate)

    record = MessageRecord(
        id=resolve_message_id(candidate, chat_id, ts, sequence),
        conversation_id=chat_id,
        from_me=bool(candidate.get("fromMe")),
        kind=kind,
        text=text,
        media_ref=_first_str(candidate, _MEDIA_FIELDS),
        ts=ts,
    )

    return ExtractedMessage(
        record=record,
        phone=resolve_phone(candidate, chat_id),
        name=_first_str(candidate, _NAME_FIELDS),
        avatar_ref=_first_str(candidate, _AVATAR_FIELDS),
        preview=build_preview(kind, text),
    )


def extract_chat(item: dict[str, Any], suffix: str = DEFAULT_JID_SUFFIX) -> ExtractedChat:
    """Summary fields from a chat-listing entry.

    Raises:
        ExtractionError: If the entry has neither an id nor a phone.
    """
    chat_id = _first_str(item, _CHAT_ID_FIELDS)
    if not chat_id and item.get("phone"):
        chat_id = phone_to_chat_id(item["phone"], suffix)
    if not chat_id:
        raise ExtractionError("no conversation id")

    last_ts = None
    raw_ts = _as_number(_first(item, _CHAT_TS_FIELDS))
    if raw_ts is not None:
        last_ts = int(raw_ts if raw_ts >= _MS_THRESHOLD else raw_ts * 1000)

    return ExtractedChat(
        conversation_id=chat_id,
        phone=resolve_phone(item, chat_id),
        name=_first_str(item, _CHAT_NAME_FIELDS),
        avatar_ref=_first_str(item, _CHAT_AVATAR_FIELDS),
        last_ts=last_ts,
    )
