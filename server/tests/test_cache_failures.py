"""Tests for endpoints served while the cache itself is failing."""

import pytest

from stofhamp.services.cache import Cache


class BrokenCache(Cache):
    """Cache whose reads and writes always raise."""

    def get(self, key):
        raise RuntimeError("cache unavailable")

    def set(self, key, data, ttl=None):
        raise RuntimeError("cache unavailable")


@pytest.fixture
def cache() -> Cache:
    return BrokenCache()


class TestBrokenCache:
    """Test cases for reads that fall back to the database"""

    @pytest.mark.asyncio
    async def test_listing_search(self, client, test_listing):
        response = await client.get("/api/listings", params={"search": "steel"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert [item["title"] for item in data["items"]] == ["Galvanized steel sheets"]
        assert [c["name"] for c in data["categories"]] == ["Metal"]

    @pytest.mark.asyncio
    async def test_categories(self, client, test_category):
        response = await client.get("/api/categories")

        assert response.status_code == 200
        assert [c["name"] for c in response.json()["data"]] == ["Metal"]

    @pytest.mark.asyncio
    async def test_favorite_status(self, client, auth_headers, test_listing):
        response = await client.post(f"/api/listings/{test_listing.id}/favorite", headers=auth_headers)
        assert response.status_code == 200

        response = await client.get(f"/api/listings/{test_listing.id}/favorite", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["isFavorite"] is True

    @pytest.mark.asyncio
    async def test_messages_and_unread_count(self, client, auth_headers, other_headers, other_user):
        response = await client.post(
            "/api/conversations", json={"sellerId": other_user.id}, headers=auth_headers
        )
        conversation_id = response.json()["data"]["id"]
        await client.post(
            f"/api/conversations/{conversation_id}/messages",
            json={"content": "Merhaba"},
            headers=auth_headers,
        )

        response = await client.get(
            f"/api/conversations/{conversation_id}/messages", headers=other_headers
        )
        assert response.status_code == 200
        assert [m["content"] for m in response.json()["data"]] == ["Merhaba"]

        response = await client.get("/api/messages/unread-count", headers=other_headers)
        assert response.json()["data"]["unreadCount"] == 1
