"""API Routers for Stofhamp."""

from .admin import router as admin_router
from .auth import router as auth_router
from .categories import router as categories_router
from .contact import router as contact_router
from .conversations import router as conversations_router
from .favorites import router as favorites_router
from .health import router as health_router
from .listings import router as listings_router
from .materials import router as materials_router
from .messages import router as messages_router
from .profile import router as profile_router
from .upload import router as upload_router

__all__ = [
    "admin_router",
    "auth_router",
    "categories_router",
    "contact_router",
    "conversations_router",
    "favorites_router",
    "health_router",
    "listings_router",
    "materials_router",
    "messages_router",
    "profile_router",
    "upload_router",
]
