"""Webhook payload signature validation."""

from __future__ import annotations

import hashlib
import hmac

from fastapi import HTTPException, status


def sign_payload(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(secret: str | None, signature: str | None, body: bytes) -> None:
    """Reject deliveries whose X-Hub-Signature-256 does not match the body.

    Validation is skipped when no secret is configured.
    """
    if not secret:
        return
    if not signature or not signature.startswith("sha256="):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")
    if not hmac.compare_digest(sign_payload(secret, body), signature):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Webhook signature mismatch")
