"""Routes GitHub webhook deliveries to the analysis orchestrator."""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError as PayloadValidationError

from app.core.errors import WebhookPayloadError
from app.schemas.webhook import IssueCommentEvent, PullRequestEvent, WebhookResponse
from app.services.orchestrator import AnalysisOrchestrator
from app.telemetry import record_webhook_delivery

_logger = logging.getLogger(__name__)

DEFAULT_RESPONSE_MESSAGE = "Webhook processed successfully"
HANDLED_EVENTS = ("pull_request.opened", "issue_comment.edited")

EventT = TypeVar("EventT", bound=BaseModel)


def _parse(model: type[EventT], event_name: str, payload: dict[str, Any]) -> EventT:
    try:
        return model.model_validate(payload)
    except PayloadValidationError as exc:
        raise WebhookPayloadError(event_name, exc.errors(include_url=False, include_context=False)) from exc


class WebhookDispatcher:
    """Dispatches on the X-GitHub-Event header and the payload's action.

    Only ``pull_request``/``opened`` and ``issue_comment``/``edited`` on a pull
    request have side effects; every other delivery is acknowledged as-is.
    """

    def __init__(self, orchestrator: AnalysisOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def dispatch(self, event_name: Optional[str], payload: dict[str, Any]) -> WebhookResponse:
        action = payload.get("action") if isinstance(payload, dict) else None
        record_webhook_delivery(event_name, action)
        _logger.info("GitHub webhook received: event=%s action=%s", event_name, action)

        if event_name == "pull_request" and action == "opened":
            event = _parse(PullRequestEvent, event_name, payload)
            return await self._orchestrator.handle_pull_request_opened(event)

        if event_name == "issue_comment" and action == "edited":
            issue = payload.get("issue") or {}
            if issue.get("pull_request"):
                event = _parse(IssueCommentEvent, event_name, payload)
                return await self._orchestrator.handle_comment_edited(event)
            _logger.debug("Ignoring comment edit on plain issue #%s", issue.get("number"))

        return WebhookResponse(message=DEFAULT_RESPONSE_MESSAGE)
