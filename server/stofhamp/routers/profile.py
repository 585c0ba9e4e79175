"""The signed-in user's own profile."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import crud
from ..database.db import get_session
from ..database.models import User
from ..dependencies import get_cache, get_current_user
from ..schemas import ProfileUpdate
from ..serializers import user_to_dict
from ..services.cache import Cache
from .listings import invalidate_listings_cache

router = APIRouter(tags=["profile"])


@router.get("/profile")
async def get_profile(user: User = Depends(get_current_user)):
    return {"success": True, "data": user_to_dict(user)}


@router.put("/profile")
async def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Update name, email, contact details and profile image."""
    email = payload.email.lower()
    if email != user.email:
        existing = await crud.get_user_by_email(session, email)
        if existing and existing.id != user.id:
            raise HTTPException(status_code=400, detail="This email address is already in use")

    user = await crud.update_user(
        session,
        user,
        name=payload.name,
        email=email,
        phone=payload.phone or None,
        company=payload.company or None,
        profile_image=payload.profile_image or None,
    )
    invalidate_listings_cache(cache)

    return {"success": True, "data": user_to_dict(user), "message": "Profile updated"}
