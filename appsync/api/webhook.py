from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request, status

from appsync.api.deps import get_webhook_reconciler
from appsync.services.github.github_webhook import WebhookReconciler

router = APIRouter(tags=["Webhooks"])


@router.post("/webhook", status_code=status.HTTP_200_OK)
async def github_webhook(
    request: Request,
    app: Optional[str] = Query(None, description="Slug of the target app connection"),
    x_hub_signature_256: Optional[str] = Header(None),
    x_github_event: Optional[str] = Header(None),
    reconciler: WebhookReconciler = Depends(get_webhook_reconciler),
):
    """Handle GitHub webhook events."""
    # The signature covers these exact bytes; never re-serialise before verifying
    payload_bytes = await request.body()
    result = reconciler.handle(payload_bytes, x_hub_signature_256, x_github_event, app)
    return {
        "message": result.message,
        "event": result.event,
        "action": result.action,
        "applied": result.applied,
    }
