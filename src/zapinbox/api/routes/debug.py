"""Diagnostic routes.

/debug/last-hook echoes the raw body of the most recent webhook delivery,
which is how new gateway payload variants get spotted. It exposes chat
content, so keep it off public deployments.
"""

from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("/last-hook")
def last_hook(request: Request) -> dict[str, Any]:
    hook = request.app.state.last_hook
    if hook is None:
        return {"info": "no webhook received yet"}
    return hook
