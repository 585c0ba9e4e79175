"""Favorite listings of the signed-in user."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import crud
from ..database.db import get_session
from ..database.models import User
from ..dependencies import get_cache, get_current_user, get_optional_user
from ..serializers import favorite_to_dict
from ..services.cache import Cache, read_through
from .listings import invalidate_listings_cache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["favorites"])

FAVORITES_PREFIX = "batch_favorites"


def invalidate_favorites_cache(cache: Cache) -> None:
    cache.invalidate_by_prefix(FAVORITES_PREFIX)
    invalidate_listings_cache(cache)


@router.get("/favorites")
async def list_favorites(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Get the signed-in user's favorites, newest first."""
    favorites = await crud.list_favorites(session, user.id)
    return {"success": True, "data": [favorite_to_dict(favorite) for favorite in favorites]}


@router.get("/listings/{listing_id}/favorite")
async def get_favorite_status(
    listing_id: str,
    user: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Whether the signed-in user has favorited a listing."""
    if user is None:
        return {"success": True, "data": {"isFavorite": False}}

    async def load() -> list[str]:
        return await crud.favorite_listing_ids(session, user.id, [listing_id])

    favorited = await read_through(
        cache, Cache.batch_key(FAVORITES_PREFIX, user.id, [listing_id]), load, ttl=cache.batch_ttl
    )

    return {"success": True, "data": {"isFavorite": listing_id in favorited}}


@router.post("/listings/{listing_id}/favorite")
async def toggle_favorite(
    listing_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Add a listing to favorites, or remove it when already there."""
    if not await crud.get_listing(session, listing_id):
        raise HTTPException(status_code=404, detail="Listing not found")

    favorite = await crud.get_favorite(session, user.id, listing_id)
    if favorite:
        await crud.remove_favorite(session, favorite)
        is_favorite = False
    else:
        await crud.add_favorite(session, user.id, listing_id)
        is_favorite = True

    invalidate_favorites_cache(cache)
    logger.info(f"User {user.id} favorite {listing_id}: {is_favorite}")

    return {"success": True, "data": {"isFavorite": is_favorite}}


@router.delete("/listings/{listing_id}/favorite")
async def remove_favorite(
    listing_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Remove a listing from favorites."""
    favorite = await crud.get_favorite(session, user.id, listing_id)
    if not favorite:
        raise HTTPException(status_code=404, detail="Favorite not found")

    await crud.remove_favorite(session, favorite)
    invalidate_favorites_cache(cache)

    return {"success": True, "message": "Removed from favorites"}
