"""Health check endpoint."""

import logging
import platform
import sys

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import __version__
from ..database.db import get_session
from ..dependencies import get_cache
from ..services.cache import Cache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Health check and status endpoint."""
    try:
        await session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        database = "unavailable"

    return {
        "status": "ok" if database == "ok" else "degraded",
        "version": __version__,
        "database": database,
        "cacheEntries": len(cache),
        "platform": platform.system().lower(),
        "pythonVersion": sys.version,
    }
