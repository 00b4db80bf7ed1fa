"""Z-API webhook intake.

Always acknowledges with 200: payload-shape problems are dropped inside the
pipeline, never reported back to the gateway (it would just retry).
"""

import json
from typing import Any
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from zapinbox.api.deps import get_ingestor
from zapinbox.inbox.ingest import Ingestor
from zapinbox.inbox.normalizer import parse_body
from zapinbox.observability.logging import get_logger
from zapinbox.observability.redaction import safe_log_context

router = APIRouter(tags=["webhooks"])

logger = get_logger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class WebhookAck(BaseModel):
    ok: bool = True
    received: int = 0


def _maybe_json(value: str) -> Any:
    stripped = value.strip()
    if stripped[:1] in ("{", "["):
        try:
            return json.loads(stripped)
        except (ValueError, RecursionError):
            return value
    return value


def decode_form(raw: str) -> Any:
    """Decode a form-encoded delivery.

    Some gateways post the JSON document itself as the only form key (with an
    empty value); others put JSON strings inside form fields.
    """
    pairs = parse_qsl(raw, keep_blank_values=True)
    if len(pairs) == 1 and pairs[0][1] == "":
        parsed = _maybe_json(pairs[0][0])
        if not isinstance(parsed, str):
            return parsed
    return {key: _maybe_json(value) for key, value in pairs}


async def read_delivery(request: Request) -> Any:
    """Best-effort decoding of whatever the gateway sent.

    JSON text is decoded; anything else comes back as the raw string, which
    the normalizer drops.
    """
    if request.method == "GET":
        return dict(request.query_params)

    raw = await request.body()
    if not raw:
        return None

    text = raw.decode("utf-8", errors="replace")
    content_type = request.headers.get("content-type", "")
    if FORM_CONTENT_TYPE in content_type:
        return decode_form(text)
    return parse_body(text)


@router.api_route("/webhook/zapi", methods=["GET", "POST"], response_model=WebhookAck)
@router.api_route(
    "/webhook/zapi/", methods=["GET", "POST"], response_model=WebhookAck, include_in_schema=False
)
async def zapi_webhook(request: Request, ingestor: Ingestor = Depends(get_ingestor)) -> WebhookAck:
    """Receive one Z-API delivery and feed it to the ingestion pipeline."""
    body = await read_delivery(request)
    request.app.state.last_hook = {
        "method": request.method,
        "query": dict(request.query_params),
        "body": body,
    }

    result = await run_in_threadpool(ingestor.ingest_body, body or {})

    logger.info(
        "zapi webhook received",
        extra={
            "extra_fields": safe_log_context(
                method=request.method,
                candidates=result.candidates,
                stored=result.stored,
            )
        },
    )
    return WebhookAck(ok=True, received=result.stored)
