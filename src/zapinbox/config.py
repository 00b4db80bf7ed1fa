"""Runtime settings loaded from environment variables."""

import os
from dataclasses import dataclass

DEFAULT_JID_SUFFIX = "@c.us"
DEFAULT_HTTP_TIMEOUT = 30
DEFAULT_PAGE_SIZE = 200
DEFAULT_MAX_PAGES = 500
DEFAULT_NORMALIZE_MAX_NODES = 10_000


def _read_int_env(name: str, default: int, minimum: int = 1) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, value)


@dataclass(frozen=True)
class Settings:
    """Z-API connection and ingestion tuning.

    Env vars:
    - ZAPI_BASE: instance base URL (e.g. https://api.z-api.io/instances/ID)
    - ZAPI_TOKEN: instance token, sent as the `token` query param
    - ZAPI_HTTP_TIMEOUT: seconds per upstream call (default 30)
    - BACKFILL_PAGE_SIZE: messages requested per page (default 200)
    - BACKFILL_MAX_PAGES: page cap per conversation (default 500)
    - BACKFILL_WORKERS: conversations backfilled in parallel (default 1)
    - DEFAULT_JID_SUFFIX: domain appended to bare phones (default @c.us)
    - NORMALIZE_MAX_NODES: node budget for the structural scan (default 10000)
    """

    zapi_base: str = ""
    zapi_token: str = ""
    http_timeout: int = DEFAULT_HTTP_TIMEOUT
    backfill_page_size: int = DEFAULT_PAGE_SIZE
    backfill_max_pages: int = DEFAULT_MAX_PAGES
    backfill_workers: int = 1
    default_jid_suffix: str = DEFAULT_JID_SUFFIX
    normalize_max_nodes: int = DEFAULT_NORMALIZE_MAX_NODES

    @property
    def zapi_configured(self) -> bool:
        return bool(self.zapi_base and self.zapi_token)


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        zapi_base=os.environ.get("ZAPI_BASE", "").strip().rstrip("/"),
        zapi_token=os.environ.get("ZAPI_TOKEN", "").strip(),
        http_timeout=_read_int_env("ZAPI_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        backfill_page_size=_read_int_env("BACKFILL_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        backfill_max_pages=_read_int_env("BACKFILL_MAX_PAGES", DEFAULT_MAX_PAGES),
        backfill_workers=_read_int_env("BACKFILL_WORKERS", 1),
        default_jid_suffix=os.environ.get("DEFAULT_JID_SUFFIX", "").strip() or DEFAULT_JID_SUFFIX,
        normalize_max_nodes=_read_int_env(
            "NORMALIZE_MAX_NODES", DEFAULT_NORMALIZE_MAX_NODES, minimum=100
        ),
    )
