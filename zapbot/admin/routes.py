"""
File: zapbot/admin/routes.py

Project: ZapBot WhatsApp Automation

Purpose:
Operator endpoints backing the dashboard's WhatsApp setup screen and
analytics views.

Endpoints:
- GET  /admin/provider/test
- POST /admin/bots/{bot_id}/instance          (controlled write)
- GET  /admin/bots/{bot_id}/instance/state
- GET  /admin/bots/{bot_id}/instance/wait     (blocks up to 120s)
- GET  /admin/bots/{bot_id}/conversations
- GET  /admin/conversations/{conversation_id}/messages
- GET  /admin/bots/{bot_id}/summary

Design rules:
- Read-only by default
- Explicit, controlled writes only where stated
- Authentication is enforced upstream by the identity provider
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from zapbot.db import get_db
from zapbot.models import Bot, Conversation, Message
from zapbot.outbound.errors import ProviderAPIError, ProviderConfigError, ProviderError
from zapbot.outbound.factory import get_provider_client
from zapbot.services import instance_registry
from zapbot.services.message_service import DIRECTION_INCOMING, DIRECTION_OUTGOING

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)

MAX_WAIT_SECONDS = 120.0


def _get_bot(db: Session, bot_id: UUID) -> Bot:
    bot = db.query(Bot).filter(Bot.id == bot_id).one_or_none()
    if not bot:
        raise HTTPException(status_code=404, detail="Bot not found")
    return bot


def _provider_http_error(exc: ProviderError) -> HTTPException:
    if isinstance(exc, ProviderAPIError):
        status_code = exc.status_code if exc.status_code and 400 <= exc.status_code < 500 else 502
        return HTTPException(
            status_code=status_code,
            detail={"error": str(exc), "category": exc.category, "details": exc.details},
        )

    if isinstance(exc, ProviderConfigError):
        error = "Evolution API URL not configured" if "EVOLUTION_API_URL" in str(exc) else "Evolution API misconfigured"
    else:
        error = "Evolution API error"
    return HTTPException(status_code=500, detail={"error": error, "details": str(exc)})


# -------------------------------------------------------------------
# Provider setup
# -------------------------------------------------------------------
@router.get("/provider/test")
def provider_connection_test(provider=Depends(get_provider_client)):
    result = provider.test_connection()
    return {
        "success": result.success,
        "message": result.message,
        "details": result.details,
    }


@router.post("/bots/{bot_id}/instance")
def connect_bot_instance(
    bot_id: UUID,
    db: Session = Depends(get_db),
    provider=Depends(get_provider_client),
):
    bot = _get_bot(db, bot_id)
    instance = instance_registry.register_instance(db, bot=bot)

    try:
        qr_code = provider.create_instance(instance.instance_name)
    except (ProviderConfigError, ProviderAPIError) as exc:
        logger.error("Instance creation failed for %s: %s", instance.instance_name, exc)
        raise _provider_http_error(exc)

    return {
        "instance_name": instance.instance_name,
        "qr_code": qr_code,
        "note": None if qr_code else "Instance may already exist or be connected",
    }


@router.get("/bots/{bot_id}/instance/state")
def bot_instance_state(
    bot_id: UUID,
    db: Session = Depends(get_db),
    provider=Depends(get_provider_client),
):
    _get_bot(db, bot_id)
    instance_name = instance_registry.instance_name_for_bot(bot_id)

    try:
        state = provider.connection_state(instance_name)
    except ProviderConfigError as exc:
        raise _provider_http_error(exc)

    instance = instance_registry.find_instance(db, instance_name=instance_name)
    return {
        "instance_name": instance_name,
        "state": state,
        "status": instance.status if instance else None,
        "phone_number": instance.phone_number if instance else None,
        "last_connected_at": instance.last_connected_at if instance else None,
    }


@router.get("/bots/{bot_id}/instance/wait")
def wait_for_bot_instance(
    bot_id: UUID,
    timeout: float = Query(60.0, gt=0, le=MAX_WAIT_SECONDS),
    interval: float = Query(5.0, gt=0, le=30),
    db: Session = Depends(get_db),
    provider=Depends(get_provider_client),
):
    """
    Blocks until the instance reports "open" or the timeout elapses.

    Used by the setup screen right after the QR code is shown; the
    dashboard falls back to polling /instance/state when this returns
    connected=false.
    """
    _get_bot(db, bot_id)
    instance_name = instance_registry.instance_name_for_bot(bot_id)

    try:
        connected = provider.wait_until_connected(instance_name, timeout=timeout, interval=interval)
    except ProviderConfigError as exc:
        raise _provider_http_error(exc)

    logger.info("Wait for %s finished: connected=%s", instance_name, connected)
    return {"instance_name": instance_name, "connected": connected}


# -------------------------------------------------------------------
# Conversations
# -------------------------------------------------------------------
@router.get("/bots/{bot_id}/conversations")
def list_conversations(bot_id: UUID, db: Session = Depends(get_db)):
    rows = (
        db.query(Conversation)
        .filter(Conversation.bot_id == bot_id)
        .order_by(Conversation.last_message_at.desc())
        .limit(50)
        .all()
    )

    return [
        {
            "id": r.id,
            "phone_number": r.phone_number,
            "contact_name": r.contact_name,
            "last_message": r.last_message,
            "last_message_at": r.last_message_at,
            "message_count": r.message_count,
        }
        for r in rows
    ]


@router.get("/conversations/{conversation_id}/messages")
def list_conversation_messages(
    conversation_id: UUID,
    db: Session = Depends(get_db),
):
    rows = (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc())
        .all()
    )

    return [
        {
            "id": r.id,
            "direction": r.direction,
            "content": r.content,
            "is_bot_response": r.is_bot_response,
            "response_trigger": r.response_trigger,
            "created_at": r.created_at,
        }
        for r in rows
    ]


# -------------------------------------------------------------------
# Analytics summary
# -------------------------------------------------------------------
@router.get("/bots/{bot_id}/summary")
def bot_summary(bot_id: UUID, db: Session = Depends(get_db)):
    bot = _get_bot(db, bot_id)

    def _count_messages(direction: str) -> int:
        return (
            db.query(func.count(Message.id))
            .filter(Message.bot_id == bot_id, Message.direction == direction)
            .scalar()
            or 0
        )

    incoming = _count_messages(DIRECTION_INCOMING)
    outgoing = _count_messages(DIRECTION_OUTGOING)

    return {
        "bot_id": bot.id,
        "status": bot.status,
        "conversations": db.query(func.count(Conversation.id))
        .filter(Conversation.bot_id == bot_id)
        .scalar()
        or 0,
        "incoming_messages": incoming,
        "outgoing_messages": outgoing,
        "bot_responses": bot.responses,
        "response_rate": round(outgoing / incoming, 4) if incoming else 0.0,
        "last_activity_at": db.query(func.max(Message.created_at))
        .filter(Message.bot_id == bot_id)
        .scalar(),
    }
