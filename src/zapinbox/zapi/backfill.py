"""Historical backfill from Z-API.

Two nested loops: list the instance's chats, then page through each chat's
history with the cursor the upstream returns. Every item goes through the
same Ingestor as live webhooks. There is no checkpoint: a failed run is
simply triggered again, and idempotent inserts absorb the overlap.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from zapinbox.config import Settings
from zapinbox.inbox.ingest import Ingestor, Outcome
from zapinbox.observability.correlation import correlation_scope, get_correlation_id, new_correlation_id
from zapinbox.observability.logging import get_logger
from zapinbox.observability.redaction import chat_ref, safe_log_context

from .client import UpstreamError, ZapiClient
from .endpoints import (
    CHAT_LIST_ENDPOINTS,
    MESSAGE_LIST_ENDPOINTS,
    AllEndpointsFailed,
    Endpoint,
    UnexpectedShapeError,
    first_success,
    parse_chat_list,
    parse_message_page,
)

logger = get_logger(__name__)

STAGE_FIRST_PAGE = "first_page"
STAGE_PAGINATION = "pagination"


class BackfillConfigError(Exception):
    """Raised before any network call when Z-API is not configured."""

    pass


class BackfillError(Exception):
    """Raised when a conversation's history cannot be read to the end."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage


@dataclass(frozen=True)
class BackfillFailure:
    conversation_id: str
    stage: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"conversationId": self.conversation_id, "stage": self.stage, "error": self.error}


@dataclass
class BackfillReport:
    conversations: int = 0
    messages: int = 0
    failures: list[BackfillFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class BackfillOrchestrator:
    """Drives one backfill run against a Z-API instance."""

    def __init__(self, client: ZapiClient, ingestor: Ingestor, settings: Settings) -> None:
        self.client = client
        self.ingestor = ingestor
        self.settings = settings

    def run(self) -> BackfillReport:
        """List chats, then import every chat's history.

        Raises:
            BackfillConfigError: If ZAPI_BASE or ZAPI_TOKEN is missing.
        """
        if not self.settings.zapi_configured:
            raise BackfillConfigError("Missing ZAPI_BASE or ZAPI_TOKEN")

        # A run gets its own id; the triggering request id is logged alongside it.
        request_cid = get_correlation_id()
        with correlation_scope(new_correlation_id("backfill")):
            logger.info(
                "backfill started",
                extra={"extra_fields": {"requestCorrelationId": request_cid or None}},
            )
            chat_ids = self._import_chats()

            report = BackfillReport()
            workers = max(1, min(self.settings.backfill_workers, len(chat_ids) or 1))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                cid = get_correlation_id()
                results = pool.map(lambda chat_id: self._backfill_scoped(cid, chat_id), chat_ids)
                for stored, failure in results:
                    report.messages += stored
                    if failure is not None:
                        report.failures.append(failure)

            report.conversations = self.ingestor.store.conversation_count()
            logger.info(
                "backfill finished",
                extra={
                    "extra_fields": safe_log_context(
                        listed=len(chat_ids),
                        conversations=report.conversations,
                        messages=report.messages,
                        failures=len(report.failures),
                    )
                },
            )
            return report

    def _import_chats(self) -> list[str]:
        """Upsert every listed chat and return their ids, first-seen order."""
        try:
            endpoint, chats = first_success(CHAT_LIST_ENDPOINTS, self._fetch_chats)
        except AllEndpointsFailed:
            # Some plans expose no listing at all.
            logger.warning("no chat listing endpoint available, continuing with none")
            return []

        seen: dict[str, None] = {}
        for item in chats:
            chat = self.ingestor.ingest_chat(item)
            if chat is not None:
                seen.setdefault(chat.conversation_id, None)

        logger.info(
            "chat listing imported",
            extra={"extra_fields": safe_log_context(path=endpoint.path, chats=len(seen))},
        )
        return list(seen)

    def _fetch_chats(self, endpoint: Endpoint) -> list[Any]:
        return parse_chat_list(self.client.get_json(endpoint.path))

    def _fetch_page(
        self, endpoint: Endpoint, chat_id: str, cursor: str | None
    ) -> tuple[list[Any], str | None]:
        params = {
            "chatId": chat_id,
            "limit": self.settings.backfill_page_size,
            "cursor": cursor,
        }
        return parse_message_page(self.client.get_json(endpoint.path, params))

    def _backfill_scoped(self, cid: str, chat_id: str) -> tuple[int, BackfillFailure | None]:
        # Worker threads do not inherit the caller's context.
        with correlation_scope(cid):
            try:
                return self.backfill_conversation(chat_id), None
            except BackfillError as e:
                logger.error(
                    "conversation backfill failed",
                    extra={
                        "extra_fields": safe_log_context(
                            chat_ref=chat_ref(chat_id), stage=e.stage, error=str(e)
                        )
                    },
                )
                return 0, BackfillFailure(conversation_id=chat_id, stage=e.stage, error=str(e))

    def backfill_conversation(self, chat_id: str) -> int:
        """Import one conversation's full history. Returns messages stored.

        The endpoint that served the first page serves all later pages.

        Raises:
            BackfillError: If no endpoint serves the first page, or a later
                page fails, repeats a cursor or exceeds the page cap.
        """
        try:
            endpoint, (items, cursor) = first_success(
                MESSAGE_LIST_ENDPOINTS, lambda ep: self._fetch_page(ep, chat_id, None)
            )
        except AllEndpointsFailed as e:
            raise BackfillError(STAGE_FIRST_PAGE, str(e)) from e

        stored = self._ingest_items(chat_id, items)
        pages = 1
        seen_cursors: set[str] = set()

        while cursor:
            if cursor in seen_cursors:
                raise BackfillError(STAGE_PAGINATION, f"cursor repeated after {pages} pages")
            if pages >= self.settings.backfill_max_pages:
                raise BackfillError(
                    STAGE_PAGINATION, f"page limit {self.settings.backfill_max_pages} reached"
                )
            seen_cursors.add(cursor)

            try:
                items, cursor = self._fetch_page(endpoint, chat_id, cursor)
            except (UpstreamError, UnexpectedShapeError) as e:
                raise BackfillError(
                    STAGE_PAGINATION, f"page {pages + 1} on {endpoint.path}: {e}"
                ) from e

            stored += self._ingest_items(chat_id, items)
            pages += 1

        logger.info(
            "conversation backfilled",
            extra={
                "extra_fields": safe_log_context(
                    chat_ref=chat_ref(chat_id), path=endpoint.path, pages=pages, stored=stored
                )
            },
        )
        return stored

    def _ingest_items(self, chat_id: str, items: list[Any]) -> int:
        stored = 0
        for item in items:
            if self.ingestor.ingest_candidate(item, conversation_id=chat_id) is Outcome.STORED:
                stored += 1
        return stored


def run_backfill(client: ZapiClient, ingestor: Ingestor, settings: Settings) -> BackfillReport:
    """Convenience wrapper used by the API route."""
    return BackfillOrchestrator(client, ingestor, settings).run()
