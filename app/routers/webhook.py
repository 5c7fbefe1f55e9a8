"""GitHub webhook endpoint."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from app.core.config import settings
from app.core.errors import WebhookPayloadError
from app.core.security import verify_signature
from app.dependencies import get_dispatcher
from app.schemas.webhook import WebhookResponse
from app.services.dispatcher import WebhookDispatcher

router = APIRouter(tags=["webhooks"])


@router.post("/", response_model=WebhookResponse, response_model_exclude_none=True)
async def receive_webhook(
    request: Request,
    x_github_event: str | None = Header(None),
    x_hub_signature_256: str | None = Header(None),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> WebhookResponse:
    body = await request.body()
    verify_signature(settings.github_webhook_secret, x_hub_signature_256, body)
    try:
        payload = json.loads(body or b"{}")
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook body is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook body must be a JSON object")
    try:
        return await dispatcher.dispatch(x_github_event, payload)
    except WebhookPayloadError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors) from exc
