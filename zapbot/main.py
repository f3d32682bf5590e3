"""
File: zapbot/main.py

Project: ZapBot WhatsApp Automation

Purpose:
Application entry point.
Responsible only for:
- Environment + logging bootstrap
- FastAPI app creation
- Router registration (webhooks, admin, health)

Design principles:
- No business logic in this file
- No database access
- All inbound WhatsApp processing is delegated to zapbot.webhooks
"""

from dotenv import load_dotenv

load_dotenv()

from contextlib import asynccontextmanager  # noqa: E402

from fastapi import FastAPI  # noqa: E402

from zapbot.admin.routes import router as admin_router  # noqa: E402
from zapbot.config import AUTO_CREATE_SCHEMA  # noqa: E402
from zapbot.db import init_db  # noqa: E402
from zapbot.health import router as health_router  # noqa: E402
from zapbot.logging_config import setup_logging  # noqa: E402
from zapbot.webhooks import router as webhooks_router  # noqa: E402

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if AUTO_CREATE_SCHEMA:
        init_db()
    yield


app = FastAPI(title="ZapBot", lifespan=lifespan)

# -------------------------------------------------------------------
# Webhook routes (POST /webhooks/whatsapp)
# -------------------------------------------------------------------
app.include_router(webhooks_router)

# -------------------------------------------------------------------
# Admin: instance setup + read-only visibility
# -------------------------------------------------------------------
app.include_router(admin_router)

# -------------------------------------------------------------------
# Health
# -------------------------------------------------------------------
app.include_router(health_router)
