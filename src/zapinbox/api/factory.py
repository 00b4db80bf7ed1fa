"""FastAPI application factory.

The store is built once per app and lives on app.state; routes reach it
through the accessors in api.deps.
"""

import os

from fastapi import Depends, FastAPI, Request, Response

from zapinbox.config import Settings, load_settings
from zapinbox.inbox.ingest import Ingestor
from zapinbox.inbox.store import InboxStore
from zapinbox.observability.correlation import (
    CORRELATION_ID_HEADER,
    correlation_scope,
    new_correlation_id,
)
from zapinbox.zapi.client import ZapiClient

from .deps import get_store
from .routes import backfill, debug, inbox, webhooks_zapi


def create_app(
    store: InboxStore | None = None,
    settings: Settings | None = None,
    zapi_client: ZapiClient | None = None,
    enable_debug: bool | None = None,
) -> FastAPI:
    """Create the app.

    Args:
        store: Shared store; a fresh empty one when None.
        settings: Explicit settings; read from the environment when None.
        zapi_client: Upstream client override (tests); built per backfill
            from settings when None.
        enable_debug: Mount /debug routes. Defaults to ENABLE_DEBUG_ROUTES=1.
    """
    settings = settings or load_settings()
    store = store or InboxStore()
    if enable_debug is None:
        enable_debug = os.environ.get("ENABLE_DEBUG_ROUTES", "1") == "1"

    app = FastAPI(title="zapinbox", docs_url=None, redoc_url=None)
    app.state.settings = settings
    app.state.store = store
    app.state.ingestor = Ingestor(store, settings)
    app.state.zapi_client = zapi_client
    app.state.last_hook = None

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or new_correlation_id()
        with correlation_scope(cid):
            response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = cid
        return response

    @app.get("/health")
    def health(store: InboxStore = Depends(get_store)) -> dict:
        """Liveness plus store size."""
        return {"status": "ok", "conversations": store.conversation_count()}

    app.include_router(webhooks_zapi.router)
    app.include_router(inbox.router)
    app.include_router(backfill.router)
    if enable_debug:
        app.include_router(debug.router)

    return app
