"""Backfill trigger.

Sync route: FastAPI runs it in the threadpool, so the sequential upstream
calls never block webhook intake on the event loop.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from zapinbox.api.deps import get_ingestor, get_settings, get_zapi_client
from zapinbox.config import Settings
from zapinbox.inbox.ingest import Ingestor
from zapinbox.observability.logging import get_logger
from zapinbox.zapi.backfill import BackfillConfigError, BackfillReport, run_backfill
from zapinbox.zapi.client import ZapiClient

router = APIRouter(tags=["backfill"])

logger = get_logger(__name__)


class BackfillFailureOut(BaseModel):
    conversation_id: str = Field(serialization_alias="conversationId")
    stage: str
    error: str


class BackfillResponse(BaseModel):
    ok: bool
    conversations: int
    messages: int
    failures: list[BackfillFailureOut] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: BackfillReport) -> "BackfillResponse":
        return cls(
            ok=report.ok,
            conversations=report.conversations,
            messages=report.messages,
            failures=[
                BackfillFailureOut(conversation_id=f.conversation_id, stage=f.stage, error=f.error)
                for f in report.failures
            ],
        )


@router.post("/backfill")
def trigger_backfill(
    ingestor: Ingestor = Depends(get_ingestor),
    settings: Settings = Depends(get_settings),
    client: ZapiClient = Depends(get_zapi_client),
) -> JSONResponse:
    """Import chat history from Z-API.

    Returns:
        200 with the report when every conversation was read to the end.
        502 with the same report when some conversations failed.
        500 if ZAPI_BASE / ZAPI_TOKEN are not configured.
    """
    try:
        report = run_backfill(client, ingestor, settings)
    except BackfillConfigError as e:
        logger.error("backfill requested without Z-API configuration")
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})

    body = BackfillResponse.from_report(report).model_dump(by_alias=True)
    return JSONResponse(status_code=200 if report.ok else 502, content=body)
