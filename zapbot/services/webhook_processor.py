"""
ZapBot WhatsApp Automation
WebhookProcessor

Responsibilities:
- Accept a parsed Evolution API webhook event
- Classify it and run the message or connection pipeline
- Contain failures per event so the endpoint can always acknowledge
- Never deal with HTTP, FastAPI, or responses
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from zapbot.outbound.evolution import WHATSAPP_JID_SUFFIX
from zapbot.outbound.gateway import ProviderClient
from zapbot.services import conversation_service, instance_registry
from zapbot.services.message_service import MessageService

logger = logging.getLogger(__name__)

EVENT_MESSAGES_UPSERT = "messages.upsert"
EVENT_CONNECTION_UPDATE = "connection.update"
EVENT_IGNORED = "ignored"

MEDIA_PLACEHOLDER = "[Media message]"


@dataclass(frozen=True)
class InboundMessage:
    instance_name: Optional[str]
    phone_number: str
    content: str
    contact_name: Optional[str]
    from_me: bool


def _first_message(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    messages = data.get("messages")
    if isinstance(messages, list):
        return messages[0] if messages and isinstance(messages[0], dict) else None
    # Newer provider versions deliver the message itself as `data`
    return data if "key" in data else None


def _extract_content(message: Dict[str, Any]) -> str:
    body = message.get("message") or {}
    extended = body.get("extendedTextMessage") or {}
    return body.get("conversation") or extended.get("text") or MEDIA_PLACEHOLDER


def parse_inbound_message(event: Dict[str, Any]) -> Optional[InboundMessage]:
    data = event.get("data")
    if not isinstance(data, dict):
        return None

    message = _first_message(data)
    if message is None:
        return None

    key = message.get("key") or {}
    from_me = bool(message.get("fromMe") or key.get("fromMe"))

    remote_jid = key.get("remoteJid") or ""
    return InboundMessage(
        instance_name=event.get("instance"),
        phone_number=remote_jid.replace(WHATSAPP_JID_SUFFIX, ""),
        content=_extract_content(message),
        contact_name=message.get("pushName"),
        from_me=from_me,
    )


class WebhookProcessor:
    def __init__(self, db: Session, provider: ProviderClient) -> None:
        self._db = db
        self._message_service = MessageService(db=db, provider=provider)

    def dispatch(self, event: Dict[str, Any]) -> str:
        """
        Route one event to its pipeline.
        Returns the event type handled, or EVENT_IGNORED.
        Pipeline failures are logged and swallowed here.
        """
        event_type = event.get("event")

        if event_type == EVENT_MESSAGES_UPSERT:
            handler = self.process_inbound_message
        elif event_type == EVENT_CONNECTION_UPDATE:
            handler = self.process_connection_update
        else:
            logger.info("Unhandled webhook event: %s", event_type)
            return EVENT_IGNORED

        try:
            handler(event)
        except Exception:
            self._db.rollback()
            logger.exception("Error handling %s event for %s", event_type, event.get("instance"))

        return event_type

    # ------------------------------------------------------------------
    # messages.upsert
    # ------------------------------------------------------------------
    def process_inbound_message(self, event: Dict[str, Any]) -> None:
        inbound = parse_inbound_message(event)
        if inbound is None:
            logger.info("messages.upsert without a message payload")
            return
        if inbound.from_me:
            return
        if not inbound.phone_number:
            logger.warning("Inbound message without sender on %s", inbound.instance_name)
            return

        logger.info(
            "Processing incoming message on %s from %s",
            inbound.instance_name,
            inbound.phone_number,
        )

        instance = instance_registry.find_instance(
            self._db, instance_name=inbound.instance_name
        )
        if not instance:
            logger.info("Bot instance not found: %s", inbound.instance_name)
            return

        conversation = conversation_service.record_inbound(
            self._db,
            instance=instance,
            phone_number=inbound.phone_number,
            content=inbound.content,
            contact_name=inbound.contact_name,
        )

        self._message_service.log_inbound(
            conversation=conversation,
            instance=instance,
            phone_number=inbound.phone_number,
            content=inbound.content,
        )

        self._message_service.handle_inbound_message(
            conversation=conversation,
            instance=instance,
            phone_number=inbound.phone_number,
            inbound_text=inbound.content,
        )

    # ------------------------------------------------------------------
    # connection.update
    # ------------------------------------------------------------------
    def process_connection_update(self, event: Dict[str, Any]) -> None:
        instance_name = event.get("instance")
        data = event.get("data") or {}

        if not instance_name:
            logger.warning("connection.update without instance name")
            return

        logger.info("Connection update: %s -> %s", instance_name, data.get("state"))

        instance_registry.apply_connection_state(
            self._db,
            instance_name=instance_name,
            state=data.get("state"),
            phone_number=data.get("number"),
        )
