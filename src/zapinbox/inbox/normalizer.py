"""Payload normalization - turn one webhook body into candidate records.

Known envelope shapes are tried in order and the first match wins. Bodies
matching none of them are scanned structurally for objects that look like
messages (an identity field plus a content field). The scan favors recall:
an unrelated nested object satisfying both checks is also returned.
"""

import json
from typing import Any

from zapinbox.config import DEFAULT_NORMALIZE_MAX_NODES
from zapinbox.observability.logging import get_logger
from zapinbox.observability.redaction import safe_log_context

from .classifier import RECEIVED_CALLBACK

logger = get_logger(__name__)

IDENTITY_FIELDS = ("chatId", "from", "jid", "remoteJid", "phone")
_DIRECT_CONTENT_FIELDS = ("body", "text", "caption", "imageUrl", "documentUrl")


def parse_body(body: Any) -> Any:
    """Opportunistically decode str/bytes bodies. Undecodable input is kept as-is."""
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(body, str):
        try:
            return json.loads(body)
        except (ValueError, RecursionError):
            return body
    return body


def has_identity(obj: dict[str, Any]) -> bool:
    return any(obj.get(field) for field in IDENTITY_FIELDS)


def has_content(obj: dict[str, Any]) -> bool:
    if obj.get("body"):
        return True
    text = obj.get("text")
    if isinstance(text, str) and text:
        return True
    if isinstance(text, dict) and (text.get("message") or text.get("caption")):
        return True
    return bool(obj.get("caption") or obj.get("imageUrl") or obj.get("documentUrl"))


def _match_envelope(body: dict[str, Any]) -> list[Any] | None:
    message = body.get("message")
    if body.get("type") == "message" and isinstance(message, dict):
        return [message]

    messages = body.get("messages")
    if isinstance(messages, list):
        return messages

    data = body.get("data")
    if body.get("event") == "message" and data:
        return data if isinstance(data, list) else [data]

    if body.get("chatId") and any(body.get(f) for f in _DIRECT_CONTENT_FIELDS):
        return [body]

    msg = body.get("msg")
    if isinstance(msg, dict) and (msg.get("chatId") or msg.get("from")):
        return [msg]

    # Z-API callbacks: phone + text.message
    if (
        body.get("type") == RECEIVED_CALLBACK
        or body.get("phone")
        or isinstance(body.get("text"), dict)
    ):
        return [body]

    return None


def scan(value: Any, max_nodes: int = DEFAULT_NORMALIZE_MAX_NODES) -> list[dict[str, Any]]:
    """Collect message-shaped objects at any depth, in document order.

    Walks pre-order with an explicit stack and stops after visiting
    max_nodes values.
    """
    found: list[dict[str, Any]] = []
    stack: list[Any] = [value]
    visited = 0

    while stack:
        node = stack.pop()
        visited += 1
        if visited > max_nodes:
            logger.warning(
                "payload scan budget exhausted",
                extra={"extra_fields": safe_log_context(max_nodes=max_nodes, found=len(found))},
            )
            break

        if isinstance(node, dict):
            if has_identity(node) and has_content(node):
                found.append(node)
            children = list(node.values())
        elif isinstance(node, list):
            children = node
        else:
            continue

        stack.extend(
            child for child in reversed(children) if isinstance(child, (dict, list))
        )

    return found


def normalize(body: Any, max_nodes: int = DEFAULT_NORMALIZE_MAX_NODES) -> list[Any]:
    """Return the candidate records contained in a webhook body.

    Never raises on malformed input: unparsable or empty bodies yield [].
    Elements of a `messages`/`data` array are passed through untouched, so
    callers must skip anything that is not a dict.
    """
    body = parse_body(body)
    if not body:
        return []

    if isinstance(body, dict):
        matched = _match_envelope(body)
        if matched is not None:
            return matched

    if not isinstance(body, (dict, list)):
        return []

    return scan(body, max_nodes=max_nodes)
