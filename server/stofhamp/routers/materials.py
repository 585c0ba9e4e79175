"""Public material type listing."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.db import get_session
from ..dependencies import get_cache
from ..services.cache import Cache
from ..services.catalog import get_materials

logger = logging.getLogger(__name__)

router = APIRouter(tags=["materials"])


@router.get("/materials")
async def list_materials(
    category_id: Optional[str] = Query(None, alias="categoryId"),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Get material types, optionally for one category (cached per category)."""
    try:
        materials = await get_materials(session, cache, category_id or None)
    except SQLAlchemyError as e:
        logger.error(f"Get materials error: {e}")
        materials = []

    return {"success": True, "data": materials}
