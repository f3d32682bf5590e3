"""
File: zapbot/admin/__init__.py

Project: ZapBot WhatsApp Automation

Purpose:
Admin package for operator visibility and WhatsApp instance setup.
"""

from .routes import router as admin_router
