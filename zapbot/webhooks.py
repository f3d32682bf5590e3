"""
File: zapbot/webhooks.py
Path: zapbot/webhooks.py

Project: ZapBot WhatsApp Automation

Purpose:
Inbound Evolution API webhook endpoint.

Response contract:
- OPTIONS -> 200 with permissive CORS headers
- malformed JSON -> 400 {error}
- dispatched -> 200 {success: true}, even if the pipeline failed internally
- failure before dispatch -> 500 {error, message}

Notes:
- The provider retries anything that is not acknowledged, so pipeline
  errors are logged and swallowed inside WebhookProcessor.
- All event handling is delegated to zapbot.services.webhook_processor.
"""

import logging
from typing import Callable

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from zapbot.db import get_db
from zapbot.outbound.factory import get_provider_factory
from zapbot.outbound.gateway import ProviderClient
from zapbot.services.webhook_processor import WebhookProcessor

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _json(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)


@router.options("/whatsapp")
def whatsapp_webhook_preflight():
    return PlainTextResponse("ok", status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post("/whatsapp")
async def whatsapp_webhook(
    request: Request,
    db: Session = Depends(get_db),
    provider_factory: Callable[[], ProviderClient] = Depends(get_provider_factory),
):
    # ---- Parse payload ----
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        return _json(status.HTTP_400_BAD_REQUEST, {"error": "Invalid JSON in request body"})

    if not isinstance(payload, dict):
        logger.warning("Webhook body is not a JSON object")
        return _json(status.HTTP_400_BAD_REQUEST, {"error": "Webhook body must be a JSON object"})

    logger.info("Webhook received: event=%s instance=%s", payload.get("event"), payload.get("instance"))

    # ---- Build pipeline + dispatch ----
    try:
        processor = WebhookProcessor(db=db, provider=provider_factory())
        await run_in_threadpool(processor.dispatch, payload)
    except Exception as exc:
        logger.exception("Webhook processing error")
        return _json(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            {"error": "Webhook processing failed", "message": str(exc)},
        )

    return _json(status.HTTP_200_OK, {"success": True})
