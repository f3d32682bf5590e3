"""
File: zapbot/services/conversation_service.py
Project: ZapBot WhatsApp Automation

Purpose:
Conversation store adapter.
One conversation per (bot, phone number), carrying a rolling summary:
last_message, last_message_at and message_count.

Design rules:
- Conversations are created lazily on the first inbound message
- message_count is incremented in SQL (UPDATE ... SET count = count + 1)
- A lost creation race falls back to updating the winner's row
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from zapbot.models import BotInstance, Conversation, utcnow

logger = logging.getLogger(__name__)


def find_conversation(db: Session, *, bot_id, phone_number: str) -> Optional[Conversation]:
    return (
        db.query(Conversation)
        .filter(
            Conversation.bot_id == bot_id,
            Conversation.phone_number == phone_number,
        )
        .one_or_none()
    )


def _create_conversation(
    db: Session,
    *,
    instance: BotInstance,
    phone_number: str,
    contact_name: Optional[str],
    content: str,
) -> Optional[Conversation]:
    conversation = Conversation(
        bot_id=instance.bot_id,
        user_id=instance.user_id,
        phone_number=phone_number,
        contact_name=contact_name or phone_number,
        last_message=content,
        last_message_at=utcnow(),
        message_count=1,
    )
    try:
        db.add(conversation)
        db.commit()
    except IntegrityError:
        db.rollback()
        return None

    db.refresh(conversation)
    logger.info("New conversation %s for %s", conversation.id, phone_number)
    return conversation


def _touch_conversation(db: Session, conversation: Conversation, content: str) -> None:
    (
        db.query(Conversation)
        .filter(Conversation.id == conversation.id)
        .update(
            {
                Conversation.last_message: content,
                Conversation.last_message_at: utcnow(),
                Conversation.message_count: func.coalesce(Conversation.message_count, 0) + 1,
            },
            synchronize_session=False,
        )
    )
    db.commit()


def record_inbound(
    db: Session,
    *,
    instance: BotInstance,
    phone_number: str,
    content: str,
    contact_name: Optional[str] = None,
) -> Conversation:
    """
    Resolve-or-create the conversation for an inbound message and
    roll its summary forward.
    """
    conversation = find_conversation(db, bot_id=instance.bot_id, phone_number=phone_number)

    if conversation is None:
        created = _create_conversation(
            db,
            instance=instance,
            phone_number=phone_number,
            contact_name=contact_name,
            content=content,
        )
        if created is not None:
            return created

        logger.info("Conversation for %s created concurrently; updating it", phone_number)
        conversation = find_conversation(db, bot_id=instance.bot_id, phone_number=phone_number)

    _touch_conversation(db, conversation, content)
    return conversation
