"""Tests for the seed command."""

import pytest

from stofhamp.config import Settings
from stofhamp.database import crud
from stofhamp.database.models import UserType
from stofhamp.seed import DEFAULT_CATEGORIES, DEFAULT_MATERIALS, seed_admin, seed_catalog


@pytest.mark.asyncio
async def test_seed_catalog_is_idempotent(db_session):
    """Test that seeding twice creates the catalog once."""
    created = await seed_catalog(db_session)
    again = await seed_catalog(db_session)

    assert created == (len(DEFAULT_CATEGORIES), len(DEFAULT_MATERIALS))
    assert again == (0, 0)

    steel = await crud.get_material_by_name(db_session, "Çelik")
    metal = await crud.get_category_by_name(db_session, "Metal")
    assert steel.category_id == metal.id


@pytest.mark.asyncio
async def test_seed_admin(db_session):
    settings = Settings(admin_email="Root@Example.com", admin_password="rootpass")

    assert await seed_admin(db_session, settings) is True
    assert await seed_admin(db_session, settings) is False

    admin = await crud.get_user_by_email(db_session, "root@example.com")
    assert admin.user_type == UserType.ADMIN


@pytest.mark.asyncio
async def test_seed_admin_skipped_without_credentials(db_session):
    settings = Settings(admin_email="", admin_password="")
    assert await seed_admin(db_session, settings) is False
