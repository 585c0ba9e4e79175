"""CRUD operations for database."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import (
    Category,
    Conversation,
    Favorite,
    Listing,
    MaterialType,
    Message,
    User,
    UserType,
    conversation_users,
    utcnow,
)

logger = logging.getLogger(__name__)


# ============== USER OPERATIONS ==============

async def get_user(session: AsyncSession, user_id: str) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def list_users(session: AsyncSession) -> list[User]:
    result = await session.execute(select(User).order_by(User.created_at.desc()))
    return list(result.scalars().all())


async def create_user(
    session: AsyncSession,
    name: str,
    email: str,
    password_hash: str,
    phone: str | None = None,
    company: str | None = None,
    user_type: str = UserType.PERSONAL,
) -> User:
    user = User(
        name=name,
        email=email,
        password=password_hash,
        phone=phone or None,
        company=company or None,
        user_type=user_type,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)

    logger.info(f"Created user: {user.id} ({email}), type={user_type}")
    return user


async def update_user(session: AsyncSession, user: User, **fields: Any) -> User:
    for key, value in fields.items():
        if hasattr(user, key):
            setattr(user, key, value)

    await session.commit()
    await session.refresh(user)

    logger.info(f"Updated user {user.id}: {sorted(k for k in fields if k != 'password')}")
    return user


async def delete_user(session: AsyncSession, user: User) -> None:
    """Delete a user together with their listings, favorites and messages."""
    listing_ids = select(Listing.id).where(Listing.seller_id == user.id)

    await session.execute(delete(Favorite).where(
        or_(Favorite.user_id == user.id, Favorite.listing_id.in_(listing_ids))
    ))
    await session.execute(
        update(Conversation)
        .where(Conversation.listing_id.in_(listing_ids))
        .values(listing_id=None)
    )
    await session.execute(delete(Listing).where(Listing.seller_id == user.id))
    await session.execute(delete(Message).where(
        or_(Message.sender_id == user.id, Message.receiver_id == user.id)
    ))
    await session.execute(delete(conversation_users).where(conversation_users.c.user_id == user.id))
    await session.delete(user)
    await session.commit()

    logger.info(f"Deleted user {user.id}")


async def count_users_by_type(session: AsyncSession) -> dict[str, int]:
    result = await session.execute(
        select(User.user_type, func.count(User.id)).group_by(User.user_type)
    )
    counts = {user_type: 0 for user_type in UserType.ALL}
    for user_type, count in result.all():
        if user_type in counts:
            counts[user_type] = count
    return counts


# ============== CATEGORY OPERATIONS ==============

async def list_categories(session: AsyncSession) -> list[Category]:
    result = await session.execute(select(Category).order_by(Category.name))
    return list(result.scalars().all())


async def get_category(session: AsyncSession, category_id: str) -> Category | None:
    return await session.get(Category, category_id)


async def get_category_by_name(session: AsyncSession, name: str) -> Category | None:
    result = await session.execute(select(Category).where(Category.name == name))
    return result.scalar_one_or_none()


async def create_category(session: AsyncSession, name: str, description: str | None = None) -> Category:
    category = Category(name=name, description=description)
    session.add(category)
    await session.commit()
    await session.refresh(category)

    logger.info(f"Created category: {category.id} - {name}")
    return category


async def update_category(
    session: AsyncSession, category: Category, name: str, description: str | None
) -> Category:
    category.name = name
    category.description = description
    await session.commit()
    await session.refresh(category)
    return category


async def category_usage(session: AsyncSession, category_id: str) -> tuple[int, int]:
    """Number of listings and material types referencing a category."""
    listings = await session.scalar(
        select(func.count(Listing.id)).where(Listing.category_id == category_id)
    )
    materials = await session.scalar(
        select(func.count(MaterialType.id)).where(MaterialType.category_id == category_id)
    )
    return listings or 0, materials or 0


async def delete_category(session: AsyncSession, category: Category) -> None:
    await session.delete(category)
    await session.commit()
    logger.info(f"Deleted category {category.id} - {category.name}")


async def listings_per_category(session: AsyncSession) -> list[tuple[Category, int]]:
    result = await session.execute(
        select(Category, func.count(Listing.id))
        .outerjoin(Listing, Listing.category_id == Category.id)
        .group_by(Category.id)
        .order_by(Category.name)
    )
    return [(category, count) for category, count in result.all()]


# ============== MATERIAL TYPE OPERATIONS ==============

async def list_materials(
    session: AsyncSession,
    category_id: str | None = None,
    with_category: bool = False,
) -> list[MaterialType]:
    query = select(MaterialType).order_by(MaterialType.name)
    if category_id:
        query = query.where(MaterialType.category_id == category_id)
    if with_category:
        query = query.options(selectinload(MaterialType.category))
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_material(
    session: AsyncSession, material_id: str, with_category: bool = False
) -> MaterialType | None:
    query = select(MaterialType).where(MaterialType.id == material_id)
    if with_category:
        query = query.options(selectinload(MaterialType.category)).execution_options(
            populate_existing=True
        )
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def get_material_by_name(session: AsyncSession, name: str) -> MaterialType | None:
    result = await session.execute(select(MaterialType).where(MaterialType.name == name))
    return result.scalars().first()


async def create_material(
    session: AsyncSession,
    name: str,
    description: str | None = None,
    category_id: str | None = None,
) -> MaterialType:
    material = MaterialType(name=name, description=description, category_id=category_id or None)
    session.add(material)
    await session.commit()
    await session.refresh(material)

    logger.info(f"Created material type: {material.id} - {name}")
    return material


async def update_material(
    session: AsyncSession,
    material: MaterialType,
    name: str,
    description: str | None,
    category_id: str | None,
) -> MaterialType:
    material.name = name
    material.description = description
    material.category_id = category_id or None
    await session.commit()
    await session.refresh(material)
    return material


async def material_listing_count(session: AsyncSession, material_id: str) -> int:
    count = await session.scalar(
        select(func.count(Listing.id)).where(Listing.material_id == material_id)
    )
    return count or 0


async def delete_material(session: AsyncSession, material: MaterialType) -> None:
    await session.delete(material)
    await session.commit()
    logger.info(f"Deleted material type {material.id} - {material.name}")


# ============== LISTING OPERATIONS ==============

SORT_OPTIONS = ("newest", "oldest", "priceAsc", "priceDesc")


@dataclass
class ListingFilters:
    """Search filters accepted by the public listing index."""
    category: Optional[str] = None
    material: Optional[str] = None
    condition: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    search: Optional[str] = None
    location: Optional[str] = None

    def as_cache_filters(self) -> dict:
        return {
            "category": self.category,
            "material": self.material,
            "condition": self.condition,
            "minPrice": self.min_price,
            "maxPrice": self.max_price,
            "search": self.search,
            "location": self.location,
        }


def _listing_conditions(filters: ListingFilters) -> list:
    conditions = []
    if filters.category:
        conditions.append(Listing.category_id == filters.category)
    if filters.material:
        conditions.append(Listing.material_id == filters.material)
    if filters.condition:
        conditions.append(Listing.condition == filters.condition)
    if filters.min_price is not None:
        conditions.append(Listing.price >= filters.min_price)
    if filters.max_price is not None:
        conditions.append(Listing.price <= filters.max_price)
    if filters.search:
        pattern = f"%{filters.search}%"
        conditions.append(or_(Listing.title.ilike(pattern), Listing.description.ilike(pattern)))
    if filters.location:
        conditions.append(Listing.location.ilike(f"%{filters.location}%"))
    return conditions


def _sort_column(sort_by: str):
    """Sort column and direction; ids break ties so cursors are stable."""
    if sort_by == "oldest":
        return Listing.created_at, True
    if sort_by == "priceAsc":
        return Listing.price, True
    if sort_by == "priceDesc":
        return Listing.price, False
    return Listing.created_at, False


async def search_listings(
    session: AsyncSession,
    filters: ListingFilters,
    sort_by: str = "newest",
    page: int = 1,
    per_page: int = 12,
    cursor: str | None = None,
) -> tuple[list[Listing], int]:
    """One page of listings plus the total number of matches."""
    conditions = _listing_conditions(filters)
    column, ascending = _sort_column(sort_by)

    query = (
        select(Listing)
        .where(*conditions)
        .options(
            selectinload(Listing.seller),
            selectinload(Listing.category),
            selectinload(Listing.material),
        )
    )
    if ascending:
        query = query.order_by(column.asc(), Listing.id.asc())
    else:
        query = query.order_by(column.desc(), Listing.id.desc())

    anchor = await session.get(Listing, cursor) if cursor else None
    if anchor is not None:
        value = getattr(anchor, column.key)
        if ascending:
            query = query.where(or_(column > value, and_(column == value, Listing.id > anchor.id)))
        else:
            query = query.where(or_(column < value, and_(column == value, Listing.id < anchor.id)))
    else:
        query = query.offset((page - 1) * per_page)

    result = await session.execute(query.limit(per_page))
    items = list(result.scalars().all())

    total = await session.scalar(select(func.count(Listing.id)).where(*conditions))
    return items, total or 0


async def favorite_counts(session: AsyncSession, listing_ids: list[str]) -> dict[str, int]:
    if not listing_ids:
        return {}
    result = await session.execute(
        select(Favorite.listing_id, func.count(Favorite.id))
        .where(Favorite.listing_id.in_(listing_ids))
        .group_by(Favorite.listing_id)
    )
    return {listing_id: count for listing_id, count in result.all()}


async def get_listing(session: AsyncSession, listing_id: str, with_relations: bool = False) -> Listing | None:
    if not with_relations:
        return await session.get(Listing, listing_id)

    result = await session.execute(
        select(Listing)
        .where(Listing.id == listing_id)
        .options(
            selectinload(Listing.seller),
            selectinload(Listing.category),
            selectinload(Listing.material),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_listing(
    session: AsyncSession,
    seller_id: str,
    lifetime_days: int = 30,
    **fields: Any,
) -> Listing:
    listing = Listing(
        seller_id=seller_id,
        expires_at=utcnow() + timedelta(days=lifetime_days),
        **fields,
    )
    session.add(listing)
    await session.commit()

    logger.info(f"Created listing: {listing.id} by {seller_id}")
    return await get_listing(session, listing.id, with_relations=True)


async def update_listing(session: AsyncSession, listing: Listing, **fields: Any) -> Listing:
    for key, value in fields.items():
        if hasattr(listing, key):
            setattr(listing, key, value)

    await session.commit()
    return await get_listing(session, listing.id, with_relations=True)


async def delete_listing(session: AsyncSession, listing: Listing) -> None:
    """Delete a listing, its favorites, and detach its conversations."""
    await session.execute(delete(Favorite).where(Favorite.listing_id == listing.id))
    await session.execute(
        update(Conversation)
        .where(Conversation.listing_id == listing.id)
        .values(listing_id=None)
    )
    await session.delete(listing)
    await session.commit()

    logger.info(f"Deleted listing {listing.id}")


async def list_seller_listings(session: AsyncSession, seller_id: str) -> list[Listing]:
    result = await session.execute(
        select(Listing)
        .where(Listing.seller_id == seller_id)
        .options(selectinload(Listing.category), selectinload(Listing.material))
        .order_by(Listing.created_at.desc())
    )
    return list(result.scalars().all())


async def admin_list_listings(
    session: AsyncSession,
    category_id: str | None = None,
    material_id: str | None = None,
    seller_id: str | None = None,
    limit: int = 100,
) -> list[Listing]:
    query = select(Listing).options(
        selectinload(Listing.seller),
        selectinload(Listing.category),
        selectinload(Listing.material),
    )
    if category_id:
        query = query.where(Listing.category_id == category_id)
    if material_id:
        query = query.where(Listing.material_id == material_id)
    if seller_id:
        query = query.where(Listing.seller_id == seller_id)

    result = await session.execute(query.order_by(Listing.created_at.desc()).limit(limit))
    return list(result.scalars().all())


async def recent_listings(session: AsyncSession, limit: int = 5) -> list[Listing]:
    return await admin_list_listings(session, limit=limit)


async def listing_dates_since(session: AsyncSession, since: datetime) -> list[datetime]:
    result = await session.execute(select(Listing.created_at).where(Listing.created_at >= since))
    return list(result.scalars().all())


# ============== FAVORITE OPERATIONS ==============

async def list_favorites(session: AsyncSession, user_id: str) -> list[Favorite]:
    result = await session.execute(
        select(Favorite)
        .where(Favorite.user_id == user_id)
        .options(
            selectinload(Favorite.listing).selectinload(Listing.category),
            selectinload(Favorite.listing).selectinload(Listing.material),
        )
        .order_by(Favorite.created_at.desc())
    )
    return list(result.scalars().all())


async def get_favorite(session: AsyncSession, user_id: str, listing_id: str) -> Favorite | None:
    result = await session.execute(
        select(Favorite).where(Favorite.user_id == user_id, Favorite.listing_id == listing_id)
    )
    return result.scalar_one_or_none()


async def favorite_listing_ids(session: AsyncSession, user_id: str, listing_ids: list[str]) -> list[str]:
    result = await session.execute(
        select(Favorite.listing_id).where(
            Favorite.user_id == user_id,
            Favorite.listing_id.in_(listing_ids),
        )
    )
    return list(result.scalars().all())


async def add_favorite(session: AsyncSession, user_id: str, listing_id: str) -> Favorite:
    favorite = Favorite(user_id=user_id, listing_id=listing_id)
    session.add(favorite)
    await session.commit()
    return favorite


async def remove_favorite(session: AsyncSession, favorite: Favorite) -> None:
    await session.delete(favorite)
    await session.commit()


# ============== CONVERSATION OPERATIONS ==============

async def list_conversations(
    session: AsyncSession, user_id: str
) -> list[tuple[Conversation, Message | None, int]]:
    """Conversations of a user with their last message and unread count."""
    result = await session.execute(
        select(Conversation)
        .where(Conversation.users.any(User.id == user_id))
        .options(selectinload(Conversation.users), selectinload(Conversation.listing))
        .order_by(Conversation.updated_at.desc())
    )
    conversations = list(result.scalars().all())
    if not conversations:
        return []

    ids = [conversation.id for conversation in conversations]
    unread_result = await session.execute(
        select(Message.conversation_id, func.count(Message.id))
        .where(
            Message.conversation_id.in_(ids),
            Message.receiver_id == user_id,
            Message.is_read.is_(False),
        )
        .group_by(Message.conversation_id)
    )
    unread = dict(unread_result.all())

    rows = []
    for conversation in conversations:
        last = await session.execute(
            select(Message)
            .where(Message.conversation_id == conversation.id)
            .order_by(Message.created_at.desc())
            .limit(1)
        )
        rows.append((conversation, last.scalar_one_or_none(), unread.get(conversation.id, 0)))
    return rows


async def find_conversation(
    session: AsyncSession, user_id: str, other_id: str, listing_id: str | None
) -> Conversation | None:
    result = await session.execute(
        select(Conversation).where(
            Conversation.users.any(User.id == user_id),
            Conversation.users.any(User.id == other_id),
            Conversation.listing_id == listing_id,
        )
    )
    return result.scalars().first()


async def create_conversation(
    session: AsyncSession, users: list[User], listing_id: str | None
) -> Conversation:
    conversation = Conversation(listing_id=listing_id, users=users)
    session.add(conversation)
    await session.commit()

    logger.info(f"Created conversation {conversation.id} for listing {listing_id}")
    return conversation


async def get_conversation_for_user(
    session: AsyncSession, conversation_id: str, user_id: str, with_users: bool = False
) -> Conversation | None:
    """A conversation, only if user_id takes part in it."""
    query = select(Conversation).where(
        Conversation.id == conversation_id,
        Conversation.users.any(User.id == user_id),
    )
    if with_users:
        query = query.options(
            selectinload(Conversation.users),
            selectinload(Conversation.listing),
        ).execution_options(populate_existing=True)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def list_messages(
    session: AsyncSession, conversation_id: str, page: int = 1, per_page: int = 20
) -> list[Message]:
    result = await session.execute(
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .options(selectinload(Message.sender))
        .order_by(Message.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all())


async def create_message(
    session: AsyncSession,
    conversation: Conversation,
    sender_id: str,
    receiver_id: str,
    content: str,
) -> Message:
    message = Message(
        content=content,
        sender_id=sender_id,
        receiver_id=receiver_id,
        conversation_id=conversation.id,
    )
    session.add(message)
    conversation.updated_at = utcnow()
    await session.commit()

    result = await session.execute(
        select(Message)
        .where(Message.id == message.id)
        .options(selectinload(Message.sender))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def mark_messages_read(session: AsyncSession, conversation_id: str, receiver_id: str) -> int:
    result = await session.execute(
        update(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.receiver_id == receiver_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
    )
    await session.commit()
    return result.rowcount or 0


async def count_unread(session: AsyncSession, user_id: str) -> int:
    count = await session.scalar(
        select(func.count(Message.id)).where(
            Message.receiver_id == user_id,
            Message.is_read.is_(False),
        )
    )
    return count or 0


# ============== STATS ==============

async def count_rows(session: AsyncSession, model) -> int:
    return await session.scalar(select(func.count()).select_from(model)) or 0
