"""Correlation IDs tying log lines to one webhook delivery or backfill run."""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

CORRELATION_ID_HEADER = "X-Correlation-ID"

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def new_correlation_id(prefix: str = "") -> str:
    """Return a fresh id, optionally tagged with its source (e.g. "backfill")."""
    value = uuid.uuid4().hex
    return f"{prefix}-{value}" if prefix else value


def get_correlation_id() -> str:
    return _correlation_id.get()


@contextmanager
def correlation_scope(cid: str) -> Iterator[str]:
    """Bind cid for the duration of the block, restoring the previous id after."""
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)
