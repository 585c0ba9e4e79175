"""Convert ORM rows into the JSON shapes returned by the API.

Everything returned here is plain data (str, int, float, bool, None,
lists and dicts), so results can be cached and shared between requests
without holding on to ORM instances or sessions.
"""

from datetime import datetime
from typing import Optional

from .database.models import (
    Category,
    Conversation,
    Favorite,
    Listing,
    MaterialType,
    Message,
    User,
)


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def category_to_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "createdAt": iso(category.created_at),
        "updatedAt": iso(category.updated_at),
    }


def material_to_dict(material: MaterialType, *, with_category: bool = False) -> dict:
    data = {
        "id": material.id,
        "name": material.name,
        "description": material.description,
        "categoryId": material.category_id,
        "createdAt": iso(material.created_at),
        "updatedAt": iso(material.updated_at),
    }
    if with_category:
        # Requires the category relationship to be loaded
        data["categoryName"] = material.category.name if material.category else None
    return data


def user_to_dict(user: User) -> dict:
    """Public profile fields; the password hash never leaves the server."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "company": user.company,
        "userType": user.user_type,
        "profileImage": user.profile_image,
        "createdAt": iso(user.created_at),
        "updatedAt": iso(user.updated_at),
    }


def seller_summary(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "company": user.company,
        "profileImage": user.profile_image,
    }


def seller_contact(user: User) -> dict:
    return {
        **seller_summary(user),
        "email": user.email,
        "phone": user.phone,
    }


def listing_to_dict(listing: Listing, *, include_relations: bool = True) -> dict:
    data = {
        "id": listing.id,
        "title": listing.title,
        "description": listing.description,
        "price": listing.price,
        "condition": listing.condition,
        "images": list(listing.images or []),
        "location": listing.location,
        "categoryId": listing.category_id,
        "materialId": listing.material_id,
        "sellerId": listing.seller_id,
        "expiresAt": iso(listing.expires_at),
        "createdAt": iso(listing.created_at),
        "updatedAt": iso(listing.updated_at),
    }
    if include_relations:
        data["category"] = category_to_dict(listing.category) if listing.category else None
        data["material"] = material_to_dict(listing.material) if listing.material else None
    return data


def admin_listing_to_dict(listing: Listing) -> dict:
    """Flat listing row used by the admin tables."""
    data = listing_to_dict(listing, include_relations=False)
    data.update(
        categoryName=listing.category.name if listing.category else None,
        materialName=listing.material.name if listing.material else None,
        sellerName=listing.seller.name if listing.seller else None,
        sellerEmail=listing.seller.email if listing.seller else None,
    )
    return data


def favorite_to_dict(favorite: Favorite) -> dict:
    return {
        "id": favorite.id,
        "userId": favorite.user_id,
        "listingId": favorite.listing_id,
        "createdAt": iso(favorite.created_at),
        "listing": listing_to_dict(favorite.listing) if favorite.listing else None,
    }


def message_to_dict(message: Message, *, include_sender: bool = True) -> dict:
    data = {
        "id": message.id,
        "content": message.content,
        "senderId": message.sender_id,
        "receiverId": message.receiver_id,
        "conversationId": message.conversation_id,
        "isRead": message.is_read,
        "createdAt": iso(message.created_at),
    }
    if include_sender:
        sender = message.sender
        data["sender"] = {
            "id": sender.id,
            "name": sender.name,
            "profileImage": sender.profile_image,
        } if sender else None
    return data


def conversation_to_dict(
    conversation: Conversation,
    last_message: Optional[Message] = None,
    unread_count: int = 0,
) -> dict:
    listing = conversation.listing
    return {
        "id": conversation.id,
        "listingId": conversation.listing_id,
        "createdAt": iso(conversation.created_at),
        "updatedAt": iso(conversation.updated_at),
        "users": [
            {"id": user.id, "name": user.name, "profileImage": user.profile_image}
            for user in conversation.users
        ],
        "listing": {
            "id": listing.id,
            "title": listing.title,
            "price": listing.price,
            "images": list(listing.images or []),
        } if listing else None,
        "messages": [message_to_dict(last_message, include_sender=False)] if last_message else [],
        "unreadCount": unread_count,
    }
