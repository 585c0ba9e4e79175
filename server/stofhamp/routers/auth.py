"""Registration and sign-in."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import crud
from ..database.db import get_session
from ..schemas import LoginRequest, RegisterRequest
from ..serializers import user_to_dict
from ..services.auth import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register")
async def register(payload: RegisterRequest, session: AsyncSession = Depends(get_session)):
    """Create a personal or business account."""
    email = payload.email.lower()
    if await crud.get_user_by_email(session, email):
        raise HTTPException(status_code=400, detail="This email address is already registered")

    user = await crud.create_user(
        session,
        name=payload.name,
        email=email,
        password_hash=hash_password(payload.password),
        phone=payload.phone,
        company=payload.company,
        user_type=payload.user_type,
    )

    return {"success": True, "data": user_to_dict(user), "message": "Registration successful"}


@router.post("/login")
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_session)):
    """Exchange email and password for a bearer token."""
    user = await crud.get_user_by_email(session, payload.email.strip().lower())
    if not user or not verify_password(payload.password, user.password):
        logger.info(f"Failed login for {payload.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    settings = get_settings()
    token = create_access_token(user.id, user.user_type)

    return {
        "success": True,
        "data": {
            "accessToken": token,
            "tokenType": "bearer",
            "expiresIn": settings.access_token_expire_minutes * 60,
            "user": user_to_dict(user),
        },
    }
