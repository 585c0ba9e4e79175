"""Conversations between buyers and sellers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import crud
from ..database.db import get_session
from ..database.models import User
from ..dependencies import get_cache, get_current_user
from ..schemas import ConversationCreate, MessageCreate
from ..serializers import conversation_to_dict, message_to_dict
from ..services.cache import Cache, read_through
from .messages import unread_count_key

logger = logging.getLogger(__name__)

router = APIRouter(tags=["conversations"])


@router.get("/conversations")
async def list_conversations(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Get the caller's conversations, most recently active first."""
    rows = await crud.list_conversations(session, user.id)
    return {
        "success": True,
        "data": [
            conversation_to_dict(conversation, last_message, unread)
            for conversation, last_message, unread in rows
        ],
    }


@router.post("/conversations")
async def start_conversation(
    payload: ConversationCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Find or create a conversation with a seller."""
    if payload.seller_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot message yourself")

    seller = await crud.get_user(session, payload.seller_id)
    if not seller:
        raise HTTPException(status_code=404, detail="Seller not found")

    if payload.listing_id and not await crud.get_listing(session, payload.listing_id):
        raise HTTPException(status_code=404, detail="Listing not found")

    conversation = await crud.find_conversation(session, user.id, seller.id, payload.listing_id)
    if conversation is None:
        conversation = await crud.create_conversation(session, [user, seller], payload.listing_id)

    conversation = await crud.get_conversation_for_user(
        session, conversation.id, user.id, with_users=True
    )
    return {"success": True, "data": conversation_to_dict(conversation)}


@router.get("/conversations/{conversation_id}/messages")
async def list_messages(
    conversation_id: str,
    page: int = Query(1),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Get one page of messages, newest first."""
    page = max(1, page)
    limit = get_settings().messages_per_page

    conversation = await crud.get_conversation_for_user(session, conversation_id, user.id)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")

    async def load() -> list[dict]:
        rows = await crud.list_messages(session, conversation_id, page=page, per_page=limit)
        return [message_to_dict(message) for message in rows]

    messages = await read_through(
        cache, Cache.message_key(conversation_id, page, limit), load, ttl=cache.message_ttl
    )

    return {"success": True, "data": messages}


@router.post("/conversations/{conversation_id}/messages")
async def send_message(
    conversation_id: str,
    payload: MessageCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    cache: Cache = Depends(get_cache),
):
    """Send a message to the other participant."""
    conversation = await crud.get_conversation_for_user(
        session, conversation_id, user.id, with_users=True
    )
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")

    receiver = next((u for u in conversation.users if u.id != user.id), None)
    if receiver is None:
        raise HTTPException(status_code=400, detail="Conversation has no other participant")

    message = await crud.create_message(
        session, conversation, sender_id=user.id, receiver_id=receiver.id, content=payload.content
    )
    cache.invalidate_messages(conversation.id)
    cache.invalidate(unread_count_key(receiver.id))
    logger.info(f"Message {message.id} sent in conversation {conversation.id}")

    return {"success": True, "data": message_to_dict(message)}
