"""
Health check endpoints
Used by Render + ops
"""

import logging

from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from zapbot.db import ping_db

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger(__name__)


@router.get("")
def health_check():
    return {"status": "healthy"}


@router.get("/db")
def db_health_check():
    try:
        ping_db()
        return {"database": "healthy"}
    except SQLAlchemyError as e:
        logger.warning("Database health check failed: %s", e)
        return {"database": "unhealthy", "error": str(e)}
