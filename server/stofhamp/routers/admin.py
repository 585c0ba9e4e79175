"""Administration endpoints: catalog, users, listings and dashboard stats."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import crud
from ..database.db import get_session
from ..database.models import Category, Favorite, Listing, MaterialType, Message, User, utcnow
from ..dependencies import get_cache, require_admin
from ..schemas import AdminUserCreate, AdminUserUpdate, CategoryPayload, MaterialPayload
from ..serializers import admin_listing_to_dict, category_to_dict, material_to_dict, user_to_dict
from ..services.auth import hash_password
from ..services.cache import Cache
from ..services.catalog import invalidate_catalog
from .listings import invalidate_listings_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# ============== CATEGORIES ==============

async def _category_or_404(session: AsyncSession, category_id: str) -> Category:
    category = await crud.get_category(session, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.get("/categories")
async def list_categories(session: AsyncSession = Depends(get_session)):
    categories = await crud.list_categories(session)
    return {"success": True, "data": [category_to_dict(category) for category in categories]}


@router.post("/categories")
async def create_category(
    payload: CategoryPayload,
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Create a category with a unique name."""
    if await crud.get_category_by_name(session, payload.name):
        raise HTTPException(status_code=400, detail="A category with this name already exists")

    category = await crud.create_category(session, payload.name, payload.description)
    invalidate_catalog(cache)

    return {"success": True, "data": category_to_dict(category)}


@router.get("/categories/{category_id}")
async def get_category(category_id: str, session: AsyncSession = Depends(get_session)):
    category = await _category_or_404(session, category_id)
    return {"success": True, "data": category_to_dict(category)}


@router.put("/categories/{category_id}")
async def update_category(
    category_id: str,
    payload: CategoryPayload,
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    category = await _category_or_404(session, category_id)

    existing = await crud.get_category_by_name(session, payload.name)
    if existing and existing.id != category.id:
        raise HTTPException(status_code=400, detail="A category with this name already exists")

    category = await crud.update_category(session, category, payload.name, payload.description)
    invalidate_catalog(cache)
    invalidate_listings_cache(cache)

    return {"success": True, "data": category_to_dict(category)}


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: str,
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Delete a category nothing refers to."""
    category = await _category_or_404(session, category_id)

    listings, materials = await crud.category_usage(session, category.id)
    if listings or materials:
        raise HTTPException(
            status_code=400,
            detail=f"Category is in use by {listings} listings and {materials} material types",
        )

    await crud.delete_category(session, category)
    invalidate_catalog(cache)

    return {"success": True, "message": "Category deleted"}


# ============== MATERIAL TYPES ==============

async def _material_or_404(session: AsyncSession, material_id: str) -> MaterialType:
    material = await crud.get_material(session, material_id, with_category=True)
    if not material:
        raise HTTPException(status_code=404, detail="Material type not found")
    return material


async def _check_category(session: AsyncSession, category_id: Optional[str]) -> None:
    if category_id and not await crud.get_category(session, category_id):
        raise HTTPException(status_code=400, detail="Category not found")


@router.get("/materials")
async def list_materials(session: AsyncSession = Depends(get_session)):
    materials = await crud.list_materials(session, with_category=True)
    return {
        "success": True,
        "data": [material_to_dict(material, with_category=True) for material in materials],
    }


@router.post("/materials")
async def create_material(
    payload: MaterialPayload,
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Create a material type, optionally attached to a category."""
    if await crud.get_material_by_name(session, payload.name):
        raise HTTPException(status_code=400, detail="A material type with this name already exists")
    await _check_category(session, payload.category_id)

    material = await crud.create_material(
        session, payload.name, payload.description, payload.category_id
    )
    invalidate_catalog(cache)

    material = await crud.get_material(session, material.id, with_category=True)
    return {"success": True, "data": material_to_dict(material, with_category=True)}


@router.get("/materials/{material_id}")
async def get_material(material_id: str, session: AsyncSession = Depends(get_session)):
    material = await _material_or_404(session, material_id)
    return {"success": True, "data": material_to_dict(material, with_category=True)}


@router.put("/materials/{material_id}")
async def update_material(
    material_id: str,
    payload: MaterialPayload,
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    material = await _material_or_404(session, material_id)

    existing = await crud.get_material_by_name(session, payload.name)
    if existing and existing.id != material.id:
        raise HTTPException(status_code=400, detail="A material type with this name already exists")
    await _check_category(session, payload.category_id)

    await crud.update_material(
        session, material, payload.name, payload.description, payload.category_id
    )
    invalidate_catalog(cache)
    invalidate_listings_cache(cache)

    material = await crud.get_material(session, material_id, with_category=True)
    return {"success": True, "data": material_to_dict(material, with_category=True)}


@router.delete("/materials/{material_id}")
async def delete_material(
    material_id: str,
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Delete a material type no listing refers to."""
    material = await _material_or_404(session, material_id)

    count = await crud.material_listing_count(session, material.id)
    if count:
        raise HTTPException(status_code=400, detail=f"Material type is in use by {count} listings")

    await crud.delete_material(session, material)
    invalidate_catalog(cache)

    return {"success": True, "message": "Material type deleted"}


# ============== USERS ==============

async def _user_or_404(session: AsyncSession, user_id: str) -> User:
    user = await crud.get_user(session, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/users")
async def list_users(session: AsyncSession = Depends(get_session)):
    users = await crud.list_users(session)
    return {"success": True, "data": [user_to_dict(user) for user in users]}


@router.post("/users")
async def create_user(payload: AdminUserCreate, session: AsyncSession = Depends(get_session)):
    email = payload.email.strip().lower()
    if await crud.get_user_by_email(session, email):
        raise HTTPException(status_code=400, detail="This email address is already registered")

    user = await crud.create_user(
        session,
        name=payload.name.strip(),
        email=email,
        password_hash=hash_password(payload.password),
        phone=payload.phone,
        company=payload.company,
        user_type=payload.user_type,
    )
    return {"success": True, "data": user_to_dict(user)}


@router.get("/users/{user_id}")
async def get_user(user_id: str, session: AsyncSession = Depends(get_session)):
    user = await _user_or_404(session, user_id)
    return {"success": True, "data": user_to_dict(user)}


@router.put("/users/{user_id}")
async def update_user(
    user_id: str,
    payload: AdminUserUpdate,
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Update a user; the password only changes when a new one is given."""
    user = await _user_or_404(session, user_id)

    email = payload.email.strip().lower()
    existing = await crud.get_user_by_email(session, email)
    if existing and existing.id != user.id:
        raise HTTPException(status_code=400, detail="This email address is already in use")

    fields = {
        "name": payload.name.strip(),
        "email": email,
        "phone": payload.phone or None,
        "company": payload.company or None,
        "profile_image": payload.profile_image or None,
    }
    if payload.user_type:
        fields["user_type"] = payload.user_type
    if payload.password:
        if len(payload.password) < 6:
            raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
        fields["password"] = hash_password(payload.password)

    user = await crud.update_user(session, user, **fields)
    invalidate_listings_cache(cache)
    return {"success": True, "data": user_to_dict(user)}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Delete a user and everything they own. Admins cannot be deleted."""
    user = await _user_or_404(session, user_id)
    if user.is_admin:
        raise HTTPException(status_code=400, detail="Admin accounts cannot be deleted")

    await crud.delete_user(session, user)
    invalidate_listings_cache(cache)
    cache.invalidate_by_prefix("batch_favorites")

    return {"success": True, "message": "User deleted"}


# ============== LISTINGS ==============

@router.get("/listings")
async def list_listings(
    category_id: Optional[str] = Query(None, alias="categoryId"),
    material_id: Optional[str] = Query(None, alias="materialId"),
    seller_id: Optional[str] = Query(None, alias="sellerId"),
    limit: int = Query(100, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
):
    listings = await crud.admin_list_listings(
        session,
        category_id=category_id,
        material_id=material_id,
        seller_id=seller_id,
        limit=limit,
    )
    return {"success": True, "data": [admin_listing_to_dict(listing) for listing in listings]}


@router.get("/listings/{listing_id}")
async def get_listing(listing_id: str, session: AsyncSession = Depends(get_session)):
    listing = await crud.get_listing(session, listing_id, with_relations=True)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    return {"success": True, "data": admin_listing_to_dict(listing)}


@router.delete("/listings/{listing_id}")
async def delete_listing(
    listing_id: str,
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    listing = await crud.get_listing(session, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")

    await crud.delete_listing(session, listing)
    invalidate_listings_cache(cache)
    cache.invalidate_by_prefix("batch_favorites")

    return {"success": True, "message": "Listing deleted"}


# ============== STATS ==============

def last_months(count: int = 12) -> list[tuple[int, int]]:
    """(year, month) pairs for the last `count` months, oldest first."""
    now = utcnow()
    year, month = now.year, now.month
    months = []
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


@router.get("/stats")
async def get_stats(session: AsyncSession = Depends(get_session)):
    """Dashboard totals and breakdowns."""
    months = last_months()
    first_year, first_month = months[0]
    since = utcnow().replace(
        year=first_year, month=first_month, day=1, hour=0, minute=0, second=0, microsecond=0
    )

    per_month = {key: 0 for key in months}
    for created_at in await crud.listing_dates_since(session, since):
        key = (created_at.year, created_at.month)
        if key in per_month:
            per_month[key] += 1

    recent = await crud.recent_listings(session, limit=5)
    per_category = await crud.listings_per_category(session)

    return {
        "success": True,
        "data": {
            "totals": {
                "users": await crud.count_rows(session, User),
                "listings": await crud.count_rows(session, Listing),
                "categories": await crud.count_rows(session, Category),
                "materials": await crud.count_rows(session, MaterialType),
                "favorites": await crud.count_rows(session, Favorite),
                "messages": await crud.count_rows(session, Message),
            },
            "usersByType": await crud.count_users_by_type(session),
            "recentListings": [admin_listing_to_dict(listing) for listing in recent],
            "listingsByCategory": [
                {"id": category.id, "name": category.name, "count": count}
                for category, count in per_category
            ],
            "listingsByMonth": [
                {"month": f"{year}-{month:02d}", "count": per_month[(year, month)]}
                for year, month in months
            ],
        },
    }
