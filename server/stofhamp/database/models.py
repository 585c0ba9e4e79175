"""SQLAlchemy models: User, Category, MaterialType, Listing, Favorite, Conversation, Message."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserType:
    ADMIN = "ADMIN"
    PERSONAL = "PERSONAL"
    BUSINESS = "BUSINESS"

    ALL = (ADMIN, PERSONAL, BUSINESS)


class Condition:
    NEW = "NEW"
    USED = "USED"

    ALL = (NEW, USED)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


conversation_users = Table(
    "conversation_users",
    Base.metadata,
    Column("conversation_id", String(36), ForeignKey("conversations.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """A buyer, seller or administrator."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_type: Mapped[str] = mapped_column(String(20), default=UserType.PERSONAL)
    profile_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    listings: Mapped[list["Listing"]] = relationship(back_populates="seller")

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email}>"


class Category(Base):
    """Top-level listing category."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    material_types: Mapped[list["MaterialType"]] = relationship(back_populates="category")
    listings: Mapped[list["Listing"]] = relationship(back_populates="category")

    def __repr__(self) -> str:
        return f"<Category {self.id}: {self.name}>"


class MaterialType(Base):
    """Material a listing is made of, optionally scoped to a category."""

    __tablename__ = "material_types"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("categories.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    category: Mapped["Category | None"] = relationship(back_populates="material_types")
    listings: Mapped[list["Listing"]] = relationship(back_populates="material")

    def __repr__(self) -> str:
        return f"<MaterialType {self.id}: {self.name}>"


class Listing(Base):
    """A classified ad."""

    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    condition: Mapped[str] = mapped_column(String(10), default=Condition.USED)
    images: Mapped[list[str]] = mapped_column(JSON, default=list)
    location: Mapped[str] = mapped_column(String(255), nullable=False)

    category_id: Mapped[str] = mapped_column(String(36), ForeignKey("categories.id"), nullable=False)
    material_id: Mapped[str] = mapped_column(String(36), ForeignKey("material_types.id"), nullable=False)
    seller_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    category: Mapped["Category"] = relationship(back_populates="listings")
    material: Mapped["MaterialType"] = relationship(back_populates="listings")
    seller: Mapped["User"] = relationship(back_populates="listings")

    def __repr__(self) -> str:
        return f"<Listing {self.id}: {self.title}>"


class Favorite(Base):
    """A listing saved by a user."""

    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("user_id", "listing_id", name="uq_favorite_user_listing"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    listing_id: Mapped[str] = mapped_column(String(36), ForeignKey("listings.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Relationships
    listing: Mapped["Listing"] = relationship()

    def __repr__(self) -> str:
        return f"<Favorite user={self.user_id} listing={self.listing_id}>"


class Conversation(Base):
    """A thread between a buyer and a seller about one listing."""

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    listing_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("listings.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    users: Mapped[list["User"]] = relationship(secondary=conversation_users)
    listing: Mapped["Listing | None"] = relationship()

    def __repr__(self) -> str:
        return f"<Conversation {self.id}>"


class Message(Base):
    """A single chat message."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sender_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    receiver_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    conversation_id: Mapped[str] = mapped_column(String(36), ForeignKey("conversations.id"), nullable=False, index=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    # Relationships
    sender: Mapped["User"] = relationship(foreign_keys=[sender_id])

    def __repr__(self) -> str:
        return f"<Message {self.id}>"
