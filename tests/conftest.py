import os
import uuid
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from zapbot.db import get_db
from zapbot.main import app
from zapbot.models import Base, Bot, BotInstance, BotResponse
from zapbot.outbound.factory import get_provider_client, get_provider_factory
from zapbot.outbound.gateway import OPEN_STATE, SendResult


class FakeProvider:
    """Records outbound calls instead of talking to the Evolution API."""

    def __init__(self):
        self.sent = []
        self.result = SendResult(ok=True, status_code=201)
        self.error = None
        self.state = OPEN_STATE
        self.qr_code = "data:image/png;base64,QR"

    def send_text(self, *, phone_number, text, instance_name):
        self.sent.append((phone_number, text, instance_name))
        if self.error:
            raise self.error
        return self.result

    def connection_state(self, instance_name):
        return self.state

    def create_instance(self, instance_name):
        return self.qr_code

    def wait_until_connected(self, instance_name, *, timeout, interval):
        self.waited = (instance_name, timeout, interval)
        return self.state == OPEN_STATE


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(db, provider):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_provider_client] = lambda: provider
    app.dependency_overrides[get_provider_factory] = lambda: (lambda: provider)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def bot(db):
    bot = Bot(user_id=uuid.uuid4(), name="Pizzaria", status="active")
    db.add(bot)
    db.commit()
    db.refresh(bot)
    return bot


@pytest.fixture
def instance(db, bot):
    instance = BotInstance(
        bot_id=bot.id,
        user_id=bot.user_id,
        instance_name=f"bot-{bot.id}",
    )
    db.add(instance)
    db.commit()
    db.refresh(instance)
    return instance


@pytest.fixture
def add_rule(db, bot):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    created = []

    def _add(trigger, response, active=True):
        rule = BotResponse(
            bot_id=bot.id,
            user_id=bot.user_id,
            trigger=trigger,
            response=response,
            active=active,
            created_at=base + timedelta(seconds=len(created)),
        )
        db.add(rule)
        db.commit()
        created.append(rule)
        return rule

    return _add


def upsert_event(instance_name, text=None, *, phone="5511999990000", push_name="Maria", from_me=False, body=None):
    if body is None:
        body = {"conversation": text}
    return {
        "event": "messages.upsert",
        "instance": instance_name,
        "data": {
            "messages": [
                {
                    "key": {
                        "remoteJid": f"{phone}@s.whatsapp.net",
                        "fromMe": from_me,
                        "id": uuid.uuid4().hex,
                    },
                    "pushName": push_name,
                    "message": body,
                }
            ]
        },
    }


@pytest.fixture
def make_event():
    return upsert_event
