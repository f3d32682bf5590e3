"""
File: zapbot/models.py

Project: ZapBot WhatsApp Automation

Purpose:
SQLAlchemy ORM models for the bot platform. These mirror the tables the
dashboard reads and writes (bots, bot_responses, bot_instances,
conversations, messages).

Design principles:
- No business logic in models
- Relationships kept minimal and explicit
- All writes are controlled by the services layer, not model side-effects
- Messages are append-only
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Text,
    Boolean,
    Integer,
    DateTime,
    Enum,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Uuid,
    false,
    func,
    true,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------
# Bot
# ---------------------------------------------------------------------
class Bot(Base):
    __tablename__ = "bots"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    welcome_message = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="active", server_default="active")
    conversations = Column(Integer, nullable=False, default=0, server_default="0")
    responses = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'paused')",
            name="ck_bots_status",
        ),
    )


# ---------------------------------------------------------------------
# Bot Response (trigger rule)
# ---------------------------------------------------------------------
class BotResponse(Base):
    __tablename__ = "bot_responses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    bot_id = Column(Uuid, ForeignKey("bots.id"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=False)
    trigger = Column(Text, nullable=False)
    response = Column(Text, nullable=False)
    active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    bot = relationship("Bot")


# ---------------------------------------------------------------------
# Bot Instance (provider connection)
# ---------------------------------------------------------------------
class BotInstance(Base):
    __tablename__ = "bot_instances"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    bot_id = Column(Uuid, ForeignKey("bots.id"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=False)
    instance_name = Column(Text, nullable=False, unique=True)
    status = Column(Text, nullable=True)
    last_connected_at = Column(DateTime(timezone=True), nullable=True)
    phone_number = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "status IS NULL OR status IN ('connected', 'disconnected')",
            name="ck_bot_instances_status",
        ),
    )

    bot = relationship("Bot")


# ---------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------
class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    bot_id = Column(Uuid, ForeignKey("bots.id"), nullable=False)
    user_id = Column(Uuid, nullable=False)
    phone_number = Column(Text, nullable=False)
    contact_name = Column(Text, nullable=True)
    last_message = Column(Text, nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    message_count = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "bot_id",
            "phone_number",
            name="uq_conversations_bot_phone",
        ),
    )

    bot = relationship("Bot")


# ---------------------------------------------------------------------
# Message (immutable)
# ---------------------------------------------------------------------
class Message(Base):
    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(
        Uuid,
        ForeignKey("conversations.id"),
        nullable=False,
        index=True,
    )
    bot_id = Column(Uuid, ForeignKey("bots.id"), nullable=False)
    user_id = Column(Uuid, nullable=False)

    direction = Column(
        Enum("incoming", "outgoing", name="message_direction"),
        nullable=False,
    )

    content = Column(Text, nullable=False)
    phone_number = Column(Text, nullable=False)
    is_bot_response = Column(Boolean, nullable=False, default=False, server_default=false())
    response_trigger = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    conversation = relationship("Conversation")
