"""Listing search, detail, create/update and sharing endpoints."""

import logging
import math
import urllib.parse
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import crud
from ..database.db import get_session
from ..database.models import User
from ..dependencies import get_cache, get_current_user
from ..schemas import ListingCreate, ListingUpdate, ShareRequest
from ..serializers import listing_to_dict, seller_contact, seller_summary
from ..services.cache import Cache, read_through
from ..services.catalog import get_categories, get_materials

logger = logging.getLogger(__name__)

router = APIRouter(tags=["listings"])

LISTINGS_PREFIX = "listings"


def invalidate_listings_cache(cache: Cache) -> None:
    """Drop every cached listing page after a listing changes."""
    count = cache.invalidate_by_prefix(f"{LISTINGS_PREFIX}_")
    logger.info(f"Listings cache invalidated ({count} pages)")


async def _check_references(session: AsyncSession, category_id: Optional[str], material_id: Optional[str]):
    if category_id and not await crud.get_category(session, category_id):
        raise HTTPException(status_code=400, detail="Category not found")
    if material_id and not await crud.get_material(session, material_id):
        raise HTTPException(status_code=400, detail="Material type not found")


@router.get("/listings")
async def search_listings(
    page: int = Query(1),
    cursor: Optional[str] = Query(None),
    sort_by: str = Query("newest", alias="sortBy"),
    category: Optional[str] = Query(None),
    material: Optional[str] = Query(None),
    condition: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    search: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Search listings with filters, sorting and pagination."""
    settings = get_settings()
    page = max(1, page)
    if sort_by not in crud.SORT_OPTIONS:
        sort_by = "newest"

    filters = crud.ListingFilters(
        category=category or None,
        material=material or None,
        condition=condition or None,
        min_price=min_price,
        max_price=max_price,
        search=search or None,
        location=location or None,
    )

    categories = await get_categories(session, cache)
    material_types = await get_materials(session, cache)

    per_page = settings.listings_per_page

    async def load() -> dict:
        items, total_items = await crud.search_listings(
            session, filters, sort_by=sort_by, page=page, per_page=per_page, cursor=cursor
        )
        counts = await crud.favorite_counts(session, [item.id for item in items])
        logger.info(f"Found {len(items)} listings out of {total_items} total")

        has_next_page = len(items) == per_page
        return {
            "items": [
                {
                    **listing_to_dict(item),
                    "seller": seller_summary(item.seller),
                    "favoriteCount": counts.get(item.id, 0),
                }
                for item in items
            ],
            "pagination": {
                "totalItems": total_items,
                "itemsPerPage": per_page,
                "currentPage": page,
                "totalPages": math.ceil(total_items / per_page),
                "hasNextPage": has_next_page,
                "hasPreviousPage": page > 1,
                "nextCursor": items[-1].id if has_next_page else None,
            },
        }

    cache_filters = {**filters.as_cache_filters(), "cursor": cursor}
    page_data = await read_through(
        cache,
        Cache.composite_key(LISTINGS_PREFIX, page, sort_by, cache_filters),
        load,
        ttl=cache.composite_ttl,
    )

    return {
        "success": True,
        "data": {**page_data, "categories": categories, "materialTypes": material_types},
    }


@router.post("/listings")
async def create_listing(
    payload: ListingCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Create a new listing that expires after the configured lifetime."""
    settings = get_settings()
    await _check_references(session, payload.category_id, payload.material_id)

    listing = await crud.create_listing(
        session,
        seller_id=user.id,
        lifetime_days=settings.listing_lifetime_days,
        **payload.model_dump(),
    )
    invalidate_listings_cache(cache)

    return {"success": True, "data": listing_to_dict(listing)}


@router.get("/listings/my")
async def get_my_listings(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Get the signed-in user's own listings."""
    listings = await crud.list_seller_listings(session, user.id)
    return {"success": True, "data": [listing_to_dict(listing) for listing in listings]}


@router.delete("/listings/my")
async def delete_my_listing(
    listing_id: Optional[str] = Query(None, alias="id"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Delete one of the signed-in user's listings."""
    if not listing_id:
        raise HTTPException(status_code=400, detail="Listing id is required")

    listing = await crud.get_listing(session, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    if listing.seller_id != user.id:
        raise HTTPException(status_code=403, detail="You are not allowed to perform this action")

    await crud.delete_listing(session, listing)
    invalidate_listings_cache(cache)

    return {"success": True, "message": "Listing deleted"}


@router.get("/listings/{listing_id}")
async def get_listing(listing_id: str, session: AsyncSession = Depends(get_session)):
    """Get listing details with seller contact information."""
    listing = await crud.get_listing(session, listing_id, with_relations=True)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")

    return {
        "success": True,
        "data": {**listing_to_dict(listing), "seller": seller_contact(listing.seller)},
    }


@router.put("/listings/{listing_id}")
async def update_listing(
    listing_id: str,
    payload: ListingUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Update a listing owned by the signed-in user."""
    listing = await crud.get_listing(session, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    if listing.seller_id != user.id:
        raise HTTPException(status_code=403, detail="You are not allowed to perform this action")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    await _check_references(session, changes.get("category_id"), changes.get("material_id"))

    listing = await crud.update_listing(session, listing, **changes)
    invalidate_listings_cache(cache)

    return {"success": True, "data": listing_to_dict(listing)}


SHARE_TEMPLATES = {
    "twitter": "https://twitter.com/intent/tweet?text={title}&url={url}",
    "facebook": "https://www.facebook.com/sharer/sharer.php?u={url}",
    "linkedin": "https://www.linkedin.com/sharing/share-offsite/?url={url}",
    "whatsapp": "https://api.whatsapp.com/send?text={title}%20{url}",
}


def build_share_link(site_url: str, listing_id: str, title: str, platform: Optional[str]) -> str:
    """Share link for a social platform, or the plain listing URL."""
    share_url = f"{site_url.rstrip('/')}/listings/{listing_id}"
    template = SHARE_TEMPLATES.get(platform or "")
    if not template:
        return share_url

    return template.format(
        url=urllib.parse.quote(share_url, safe=""),
        title=urllib.parse.quote(title, safe=""),
    )


@router.post("/listings/{listing_id}/share")
async def share_listing(
    listing_id: str,
    payload: ShareRequest,
    session: AsyncSession = Depends(get_session),
):
    """Build a share link for a listing."""
    listing = await crud.get_listing(session, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")

    share_link = build_share_link(get_settings().site_url, listing.id, listing.title, payload.platform)
    return {"success": True, "data": {"shareLink": share_link}}
