"""Ingestion pipeline shared by webhook delivery and backfill."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from zapinbox.config import Settings
from zapinbox.observability.logging import get_logger
from zapinbox.observability.redaction import chat_ref, safe_log_context

from .classifier import EventClass, classify_candidate, declared_type
from .extractor import ExtractedChat, ExtractionError, extract, extract_chat
from .normalizer import normalize
from .store import InboxStore

logger = get_logger(__name__)


class Outcome(str, Enum):
    STORED = "stored"
    DUPLICATE = "duplicate"
    NOISE = "noise"
    DROPPED = "dropped"


@dataclass
class IngestResult:
    """Per-body tally of what happened to each candidate."""

    counts: dict[Outcome, int] = field(default_factory=lambda: {o: 0 for o in Outcome})

    def add(self, outcome: Outcome) -> None:
        self.counts[outcome] += 1

    @property
    def candidates(self) -> int:
        return sum(self.counts.values())

    @property
    def stored(self) -> int:
        return self.counts[Outcome.STORED]

    @property
    def duplicates(self) -> int:
        return self.counts[Outcome.DUPLICATE]

    @property
    def noise(self) -> int:
        return self.counts[Outcome.NOISE]

    @property
    def dropped(self) -> int:
        return self.counts[Outcome.DROPPED]


class Ingestor:
    """Feeds candidate records into an InboxStore.

    Candidates that are noise or carry no conversation id are skipped
    silently: upstream variance must never turn into a caller-visible error.
    """

    def __init__(self, store: InboxStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or Settings()

    def ingest_body(self, body: Any) -> IngestResult:
        """Normalize one webhook body and ingest every candidate in it."""
        result = IngestResult()
        for candidate in normalize(body, max_nodes=self.settings.normalize_max_nodes):
            result.add(self.ingest_candidate(candidate))

        logger.debug(
            "webhook body ingested",
            extra={
                "extra_fields": safe_log_context(
                    candidates=result.candidates,
                    stored=result.stored,
                    duplicates=result.duplicates,
                    noise=result.noise,
                    dropped=result.dropped,
                )
            },
        )
        return result

    def ingest_candidate(self, candidate: Any, conversation_id: str | None = None) -> Outcome:
        """Classify, extract and store a single candidate.

        Args:
            candidate: Raw record; anything but a dict is dropped.
            conversation_id: Fixed conversation for backfilled items.
        """
        if not isinstance(candidate, dict):
            return Outcome.DROPPED

        if classify_candidate(candidate) is EventClass.NOISE:
            logger.debug(
                "noise event skipped",
                extra={"extra_fields": safe_log_context(event_type=declared_type(candidate))},
            )
            return Outcome.NOISE

        try:
            extracted = extract(
                candidate,
                conversation_id=conversation_id,
                sequence=self.store.next_sequence,
                suffix=self.settings.default_jid_suffix,
            )
        except ExtractionError:
            logger.debug(
                "candidate without conversation id dropped",
                extra={"extra_fields": safe_log_context(candidate=candidate)},
            )
            return Outcome.DROPPED

        record = extracted.record
        if not self.store.push_message(record.conversation_id, record):
            logger.debug(
                "duplicate message ignored",
                extra={
                    "extra_fields": safe_log_context(
                        chat_ref=chat_ref(record.conversation_id),
                        message_id_prefix=record.id[:8],
                    )
                },
            )
            return Outcome.DUPLICATE

        self.store.upsert_conversation(record.conversation_id, extracted.conversation_update())
        return Outcome.STORED

    def ingest_chat(self, item: Any) -> ExtractedChat | None:
        """Upsert the summary for one chat-listing entry (backfill)."""
        if not isinstance(item, dict):
            return None
        try:
            chat = extract_chat(item, suffix=self.settings.default_jid_suffix)
        except ExtractionError:
            return None
        self.store.upsert_conversation(chat.conversation_id, chat.conversation_update())
        return chat
