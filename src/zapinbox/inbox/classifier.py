"""Event classification - separate chat content from gateway noise.

Z-API (and the gateways it mimics) deliver receipts, presence updates and
typing indicators on the same webhook as real messages. Those carry no chat
content and must never touch a conversation or its log.
"""

import re
from enum import Enum
from typing import Any

RECEIVED_CALLBACK = "ReceivedCallback"

# Matched anywhere in the lowercased type.
_NOISE_SUBSTRINGS = (
    "status",
    "presence",
    "typing",
    "composing",
    "acknowledg",
    "receipt",
    "delivery",
)

# Matched as whole words only: "ack" also occurs inside "callback".
_NOISE_WORDS = frozenset({"ack", "read"})

_WORD_SPLIT = re.compile(r"[^a-z0-9]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

_TYPE_FIELDS = ("type", "messageType", "event")


class EventClass(str, Enum):
    CONTENT = "content"
    NOISE = "noise"


def _words(raw_type: str) -> set[str]:
    spaced = _CAMEL_BOUNDARY.sub(" ", raw_type).lower()
    return {w for w in _WORD_SPLIT.split(spaced) if w}


def classify(raw_type: str | None) -> EventClass:
    """Classify a declared event type. Missing types count as content."""
    if not raw_type:
        return EventClass.CONTENT

    lowered = raw_type.lower()
    if any(marker in lowered for marker in _NOISE_SUBSTRINGS):
        return EventClass.NOISE
    if _words(raw_type) & _NOISE_WORDS:
        return EventClass.NOISE
    return EventClass.CONTENT


def declared_type(candidate: dict[str, Any]) -> str | None:
    """First string-valued type-ish field of a candidate record."""
    for field in _TYPE_FIELDS:
        value = candidate.get(field)
        if isinstance(value, str) and value:
            return value
    return None


def classify_candidate(candidate: dict[str, Any]) -> EventClass:
    return classify(declared_type(candidate))


def canonical_kind(raw_type: str) -> str:
    """Map provider callback names onto message kinds."""
    if raw_type == RECEIVED_CALLBACK:
        return "chat"
    return raw_type
