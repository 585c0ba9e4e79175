"""Seed the database with the default catalog and an optional admin account."""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings, get_settings
from .database import close_db, init_db
from .database import crud
from .database.db import get_session_maker
from .database.models import UserType
from .services.auth import hash_password
from .utils.logger import setup_logger

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("Metal", "Metal scraps and surplus"),
    ("Plastik", "Plastic materials"),
    ("Ahşap", "Wood and wood-based panels"),
    ("Tekstil", "Fabrics and textile waste"),
    ("Kağıt", "Paper and cardboard"),
]

# material name, description, category name
DEFAULT_MATERIALS = [
    ("Çelik", "Steel", "Metal"),
    ("Alüminyum", "Aluminium", "Metal"),
    ("PVC", "Polyvinyl chloride", "Plastik"),
    ("PP", "Polypropylene", "Plastik"),
    ("MDF", "Medium-density fibreboard", "Ahşap"),
    ("Sunta", "Particle board", "Ahşap"),
    ("Pamuk", "Cotton", "Tekstil"),
    ("Polyester", "Polyester", "Tekstil"),
]


async def seed_catalog(session: AsyncSession) -> tuple[int, int]:
    """Insert missing default categories and material types."""
    created_categories = 0
    category_ids = {}
    for name, description in DEFAULT_CATEGORIES:
        category = await crud.get_category_by_name(session, name)
        if category is None:
            category = await crud.create_category(session, name, description)
            created_categories += 1
        category_ids[name] = category.id

    created_materials = 0
    for name, description, category_name in DEFAULT_MATERIALS:
        if await crud.get_material_by_name(session, name) is None:
            await crud.create_material(session, name, description, category_ids[category_name])
            created_materials += 1

    return created_categories, created_materials


async def seed_admin(session: AsyncSession, settings: Settings) -> bool:
    """Create the admin account from settings when it does not exist yet."""
    if not settings.admin_email or not settings.admin_password:
        return False

    email = settings.admin_email.strip().lower()
    if await crud.get_user_by_email(session, email):
        return False

    await crud.create_user(
        session,
        name="Admin",
        email=email,
        password_hash=hash_password(settings.admin_password),
        user_type=UserType.ADMIN,
    )
    return True


async def seed() -> None:
    settings = get_settings()
    await init_db()
    try:
        async with get_session_maker()() as session:
            categories, materials = await seed_catalog(session)
            logger.info(f"Seeded {categories} categories and {materials} material types")

            if await seed_admin(session, settings):
                logger.info(f"Created admin account {settings.admin_email}")
    finally:
        await close_db()


def main():
    setup_logger()
    asyncio.run(seed())


if __name__ == "__main__":
    main()
