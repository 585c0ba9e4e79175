"""Cached reference data: categories and material types."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..database import crud
from ..serializers import category_to_dict, material_to_dict
from .cache import Cache, read_through

logger = logging.getLogger(__name__)

CATEGORIES_KEY = "categories"
MATERIALS_KEY = "materials"


def materials_key(category_id: Optional[str] = None) -> str:
    """Base key for all material types, composite key per category."""
    return f"{MATERIALS_KEY}_{category_id}" if category_id else MATERIALS_KEY


async def get_categories(session: AsyncSession, cache: Cache) -> list[dict]:
    """All categories sorted by name."""
    async def load() -> list[dict]:
        categories = await crud.list_categories(session)
        logger.info(f"Loaded {len(categories)} categories from database")
        return [category_to_dict(category) for category in categories]

    return await read_through(cache, CATEGORIES_KEY, load)


async def get_materials(
    session: AsyncSession, cache: Cache, category_id: Optional[str] = None
) -> list[dict]:
    """Material types sorted by name, optionally limited to one category."""
    async def load() -> list[dict]:
        materials = await crud.list_materials(session, category_id=category_id)
        logger.info(f"Loaded {len(materials)} material types from database (category={category_id})")
        return [material_to_dict(material) for material in materials]

    return await read_through(cache, materials_key(category_id), load)


def invalidate_catalog(cache: Cache) -> None:
    """Drop cached categories and every material type view."""
    cache.invalidate(CATEGORIES_KEY)
    cache.invalidate_by_prefix(MATERIALS_KEY)
    logger.info("Catalog cache invalidated")
