"""Ordered endpoint candidates and first-success probing.

Z-API plans expose the same listing under different paths, and not every
plan has every path. Callers try candidates in priority order; the first one
that answers with a usable shape wins.
"""

from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from zapinbox.observability.logging import get_logger
from zapinbox.observability.redaction import safe_log_context

from .client import UpstreamError

logger = get_logger(__name__)

T = TypeVar("T")

LIST_CHATS = "list-chats"
LIST_MESSAGES = "list-messages"


@dataclass(frozen=True)
class Endpoint:
    capability: str
    path: str


CHAT_LIST_ENDPOINTS: tuple[Endpoint, ...] = (
    Endpoint(LIST_CHATS, "/chats"),
    Endpoint(LIST_CHATS, "/client/chats"),
    Endpoint(LIST_CHATS, "/contacts"),
)

MESSAGE_LIST_ENDPOINTS: tuple[Endpoint, ...] = (
    Endpoint(LIST_MESSAGES, "/messages"),
    Endpoint(LIST_MESSAGES, "/client/messages"),
)

_CHAT_WRAPPERS = ("chats", "contacts", "items")
_MESSAGE_WRAPPERS = ("messages", "items")
_CURSOR_FIELDS = ("nextCursor", "next_cursor")


class UnexpectedShapeError(Exception):
    """Raised when a 2xx response does not carry the expected list."""

    pass


class AllEndpointsFailed(Exception):
    """Raised when every candidate endpoint failed."""

    def __init__(self, capability: str, errors: list[tuple[str, str]]) -> None:
        detail = "; ".join(f"{path}: {err}" for path, err in errors)
        super().__init__(f"all {capability} endpoints failed ({detail})")
        self.capability = capability
        self.errors = errors


def first_success(
    endpoints: tuple[Endpoint, ...],
    call: Callable[[Endpoint], T],
) -> tuple[Endpoint, T]:
    """Return the first endpoint whose call succeeds, with its result.

    UpstreamError and UnexpectedShapeError move on to the next candidate;
    anything else propagates.

    Raises:
        AllEndpointsFailed: If no candidate succeeded.
    """
    errors: list[tuple[str, str]] = []
    for endpoint in endpoints:
        try:
            return endpoint, call(endpoint)
        except (UpstreamError, UnexpectedShapeError) as e:
            errors.append((endpoint.path, str(e)))
            logger.info(
                "endpoint candidate failed, trying next",
                extra={
                    "extra_fields": safe_log_context(
                        capability=endpoint.capability,
                        path=endpoint.path,
                        error_type=type(e).__name__,
                    )
                },
            )
    capability = endpoints[0].capability if endpoints else "unknown"
    raise AllEndpointsFailed(capability, errors)


def _unwrap_list(data: Any, wrappers: tuple[str, ...]) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in wrappers:
            if isinstance(data.get(key), list):
                return data[key]
    raise UnexpectedShapeError(f"no list under {', '.join(wrappers)}")


def parse_chat_list(data: Any) -> list[Any]:
    """Chats from a bare array or a chats/contacts/items wrapper."""
    return _unwrap_list(data, _CHAT_WRAPPERS)


def parse_message_page(data: Any) -> tuple[list[Any], str | None]:
    """Messages and the next cursor from one history page."""
    items = _unwrap_list(data, _MESSAGE_WRAPPERS)
    cursor = None
    if isinstance(data, dict):
        for key in _CURSOR_FIELDS:
            if data.get(key):
                cursor = str(data[key])
                break
    return items, cursor
