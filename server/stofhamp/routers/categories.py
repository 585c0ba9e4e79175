"""Public category listing."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.db import get_session
from ..dependencies import get_cache
from ..services.cache import Cache
from ..services.catalog import get_categories

logger = logging.getLogger(__name__)

router = APIRouter(tags=["categories"])


@router.get("/categories")
async def list_categories(
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Get all categories (cached)."""
    try:
        categories = await get_categories(session, cache)
    except SQLAlchemyError as e:
        logger.error(f"Get categories error: {e}")
        categories = []

    return {"success": True, "data": categories}
