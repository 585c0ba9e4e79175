"""FastAPI dependencies shared by the routers."""

from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .database import crud
from .database.db import get_session
from .database.models import User
from .services.auth import decode_access_token
from .services.cache import Cache

bearer_scheme = HTTPBearer(auto_error=False)


def get_cache(request: Request) -> Cache:
    """The cache owned by the running application."""
    return request.app.state.cache


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> Optional[User]:
    """The signed-in user, or None for anonymous requests."""
    if credentials is None:
        return None

    user_id = decode_access_token(credentials.credentials)
    if not user_id:
        return None

    return await crud.get_user(session, user_id)


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="You need to sign in")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="You are not allowed to perform this action")
    return user
