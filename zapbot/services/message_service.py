"""
File: zapbot/services/message_service.py

Project: ZapBot WhatsApp Automation

Purpose:
Authoritative service responsible for:
- Appending inbound and outbound Message rows (append-only log)
- INLINE auto-reply: trigger matching, provider send, outbound logging

Design rules:
- The webhook pipeline delegates message persistence here
- Outbound rows are written only after the provider accepted the send
- One send attempt per inbound message, no retries
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from zapbot.models import Bot, BotInstance, BotResponse, Conversation, Message
from zapbot.outbound.gateway import ProviderClient
from zapbot.services.trigger_matcher import match_response

logger = logging.getLogger(__name__)

DIRECTION_INCOMING = "incoming"
DIRECTION_OUTGOING = "outgoing"


class MessageService:
    def __init__(self, db: Session, provider: ProviderClient):
        self._db = db
        self._provider = provider

    # ---------------------------------------------------------
    # Message log
    # ---------------------------------------------------------
    def log_inbound(
        self,
        *,
        conversation: Conversation,
        instance: BotInstance,
        phone_number: str,
        content: str,
    ) -> Message:
        return self._append(
            Message(
                conversation_id=conversation.id,
                bot_id=instance.bot_id,
                user_id=instance.user_id,
                direction=DIRECTION_INCOMING,
                content=content,
                phone_number=phone_number,
            )
        )

    def log_outbound(
        self,
        *,
        conversation: Conversation,
        instance: BotInstance,
        phone_number: str,
        content: str,
        trigger: str,
    ) -> Message:
        return self._append(
            Message(
                conversation_id=conversation.id,
                bot_id=instance.bot_id,
                user_id=instance.user_id,
                direction=DIRECTION_OUTGOING,
                content=content,
                phone_number=phone_number,
                is_bot_response=True,
                response_trigger=trigger,
            )
        )

    def _append(self, message: Message) -> Message:
        self._db.add(message)
        self._db.commit()
        self._db.refresh(message)
        return message

    # ---------------------------------------------------------
    # Auto-reply
    # ---------------------------------------------------------
    def active_rules(self, bot_id) -> List[BotResponse]:
        return (
            self._db.query(BotResponse)
            .filter(
                BotResponse.bot_id == bot_id,
                BotResponse.active.is_(True),
            )
            .order_by(BotResponse.created_at.asc(), BotResponse.id.asc())
            .all()
        )

    def handle_inbound_message(
        self,
        *,
        conversation: Conversation,
        instance: BotInstance,
        phone_number: str,
        inbound_text: str,
    ) -> Optional[Message]:
        """
        Match the inbound text against the bot's active rules and reply.

        Returns the outbound Message when a reply was sent, otherwise None.
        """
        rule = match_response(self.active_rules(instance.bot_id), inbound_text)
        if rule is None:
            return None

        logger.info("Auto-response triggered by %r for %s", rule.trigger, phone_number)

        # ---- INLINE SEND ----
        result = self._provider.send_text(
            phone_number=phone_number,
            text=rule.response,
            instance_name=instance.instance_name,
        )
        if not result.ok:
            logger.warning(
                "Auto-response to %s not delivered (%s); outbound not logged",
                phone_number,
                result.category,
            )
            return None

        outbound = self.log_outbound(
            conversation=conversation,
            instance=instance,
            phone_number=phone_number,
            content=rule.response,
            trigger=rule.trigger,
        )
        self._increment_bot_responses(instance.bot_id)
        return outbound

    def _increment_bot_responses(self, bot_id) -> None:
        (
            self._db.query(Bot)
            .filter(Bot.id == bot_id)
            .update({Bot.responses: Bot.responses + 1}, synchronize_session=False)
        )
        self._db.commit()
