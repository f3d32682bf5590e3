"""
File: zapbot/services/instance_registry.py
Project: ZapBot WhatsApp Automation

Purpose:
Bot instance registry.

This is the ONLY place allowed to:
- resolve a provider instance name to its bot
- register an instance for a bot
- write connection status for an instance

Design rules:
- Lookups are keyed by instance name, never by bot id
- DB is source of truth
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from zapbot.models import Bot, BotInstance, utcnow
from zapbot.outbound.gateway import OPEN_STATE

logger = logging.getLogger(__name__)

STATUS_CONNECTED = "connected"
STATUS_DISCONNECTED = "disconnected"


def instance_name_for_bot(bot_id) -> str:
    return f"bot-{bot_id}"


# -------------------------------------------------
# Queries
# -------------------------------------------------

def find_instance(db: Session, *, instance_name: str) -> Optional[BotInstance]:
    return (
        db.query(BotInstance)
        .filter(BotInstance.instance_name == instance_name)
        .one_or_none()
    )


# -------------------------------------------------
# Commands
# -------------------------------------------------

def register_instance(db: Session, *, bot: Bot) -> BotInstance:
    """
    Returns the instance bound to this bot, creating it when missing.
    Idempotent: repeated setup attempts reuse the same row.
    """
    instance_name = instance_name_for_bot(bot.id)
    existing = find_instance(db, instance_name=instance_name)
    if existing:
        return existing

    instance = BotInstance(
        bot_id=bot.id,
        user_id=bot.user_id,
        instance_name=instance_name,
    )
    try:
        db.add(instance)
        db.commit()
    except IntegrityError:
        db.rollback()
        return find_instance(db, instance_name=instance_name)

    db.refresh(instance)
    logger.info("Registered instance %s for bot %s", instance_name, bot.id)
    return instance


def apply_connection_state(
    db: Session,
    *,
    instance_name: str,
    state: Optional[str],
    phone_number: Optional[str] = None,
) -> bool:
    """
    Records a provider connection update.

    Returns:
        True  -> instance updated
        False -> no instance with that name
    """
    instance = find_instance(db, instance_name=instance_name)
    if not instance:
        logger.warning("Connection update for unknown instance %s", instance_name)
        return False

    if state == OPEN_STATE:
        instance.status = STATUS_CONNECTED
        instance.last_connected_at = utcnow()
    else:
        instance.status = STATUS_DISCONNECTED
        instance.last_connected_at = None

    if phone_number:
        instance.phone_number = phone_number

    db.commit()
    logger.info("Instance %s is now %s", instance_name, instance.status)
    return True
