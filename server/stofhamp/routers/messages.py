"""Read receipts and unread message counts."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import crud
from ..database.db import get_session
from ..database.models import User
from ..dependencies import get_cache, get_current_user, get_optional_user
from ..schemas import MarkReadRequest
from ..services.cache import Cache, read_through

logger = logging.getLogger(__name__)

router = APIRouter(tags=["messages"])


def unread_count_key(user_id: str) -> str:
    return f"unread_count_{user_id}"


@router.post("/messages/mark-read")
async def mark_read(
    payload: MarkReadRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Mark every message addressed to the caller in a conversation as read."""
    conversation = await crud.get_conversation_for_user(session, payload.conversation_id, user.id)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")

    updated = await crud.mark_messages_read(session, conversation.id, user.id)
    cache.invalidate_messages(conversation.id)
    cache.invalidate(unread_count_key(user.id))

    return {"success": True, "data": {"updated": updated}}


@router.get("/messages/unread-count")
async def unread_count(
    user: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Number of unread messages for the caller (0 when signed out)."""
    if user is None:
        return {"success": True, "data": {"unreadCount": 0}}

    async def load() -> int:
        return await crud.count_unread(session, user.id)

    try:
        count = await read_through(
            cache, unread_count_key(user.id), load, ttl=get_settings().unread_count_ttl
        )
    except SQLAlchemyError as e:
        logger.error(f"Unread count error: {e}")
        count = 0

    return {"success": True, "data": {"unreadCount": count}}
