"""Request bodies accepted by the API."""

from typing import Annotated, Literal, Optional
from pydantic import AfterValidator, BaseModel, ConfigDict, Field

Condition = Literal["NEW", "USED"]
UserTypeName = Literal["ADMIN", "PERSONAL", "BUSINESS"]


class CamelModel(BaseModel):
    """Accept both camelCase (client) and snake_case field names."""
    model_config = ConfigDict(populate_by_name=True)


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


NonBlank = Annotated[str, AfterValidator(_strip_required)]


class RegisterRequest(CamelModel):
    name: NonBlank = Field(..., max_length=255)
    email: NonBlank = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, max_length=72)
    phone: Optional[str] = None
    company: Optional[str] = None
    user_type: Literal["PERSONAL", "BUSINESS"] = Field(default="PERSONAL", alias="userType")


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileUpdate(CamelModel):
    name: NonBlank
    email: NonBlank = Field(..., min_length=3)
    phone: Optional[str] = None
    company: Optional[str] = None
    profile_image: Optional[str] = Field(default=None, alias="profileImage")


class ListingCreate(CamelModel):
    title: str = Field(..., min_length=3, max_length=255)
    description: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    condition: Condition = "USED"
    images: list[str] = Field(default_factory=list)
    location: str = Field(..., min_length=1)
    category_id: str = Field(..., alias="categoryId")
    material_id: str = Field(..., alias="materialId")


class ListingUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    condition: Optional[Condition] = None
    images: Optional[list[str]] = None
    location: Optional[str] = None
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    material_id: Optional[str] = Field(default=None, alias="materialId")


class ShareRequest(BaseModel):
    platform: Optional[str] = None


class ConversationCreate(CamelModel):
    seller_id: str = Field(..., alias="sellerId")
    listing_id: Optional[str] = Field(default=None, alias="listingId")


class MessageCreate(BaseModel):
    content: NonBlank = Field(..., max_length=5000)


class MarkReadRequest(CamelModel):
    conversation_id: str = Field(..., min_length=1, alias="conversationId")


class ContactRequest(BaseModel):
    name: NonBlank = Field(..., max_length=255)
    email: NonBlank = Field(..., max_length=255)
    subject: NonBlank = Field(..., max_length=255)
    message: NonBlank = Field(..., max_length=10000)


class CategoryPayload(BaseModel):
    name: NonBlank = Field(..., max_length=100)
    description: Optional[str] = None


class MaterialPayload(CamelModel):
    name: NonBlank = Field(..., max_length=100)
    description: Optional[str] = None
    category_id: Optional[str] = Field(default=None, alias="categoryId")


class AdminUserCreate(CamelModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6, max_length=72)
    phone: Optional[str] = None
    company: Optional[str] = None
    user_type: UserTypeName = Field(default="PERSONAL", alias="userType")


class AdminUserUpdate(CamelModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: Optional[str] = Field(default=None, max_length=72)
    phone: Optional[str] = None
    company: Optional[str] = None
    user_type: Optional[UserTypeName] = Field(default=None, alias="userType")
    profile_image: Optional[str] = Field(default=None, alias="profileImage")
