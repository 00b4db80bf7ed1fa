"""Log-safe rendering of chat identifiers and upstream URLs.

Chat ids and phone numbers are PII: they only reach the logs as short
sha256 references.
"""

import hashlib
import re
from typing import Any

_TOKEN_PARAM = re.compile(r"(token=)[^&\s]+", re.IGNORECASE)
_DIGIT_RUN = re.compile(r"\d{6,}")

_MASK = "***"


def chat_ref(chat_id: str | None) -> str:
    """Stable, non-reversible reference for a chat id (first 12 hex chars)."""
    if not chat_id:
        return ""
    return hashlib.sha256(chat_id.encode("utf-8")).hexdigest()[:12]


def redact_url(url: str) -> str:
    """Mask the instance token carried in Z-API query strings."""
    return _TOKEN_PARAM.sub(rf"\g<1>{_MASK}", url)


def redact_string(value: str) -> str:
    return _DIGIT_RUN.sub(_MASK, redact_url(value))


def redact_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return f"dict(keys={sorted(str(k) for k in value)})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Redact every value so the result can go straight into extra_fields."""
    return {key: redact_value(value) for key, value in kwargs.items()}
