"""Tests for contact mail, image upload and health endpoints."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from stofhamp.config import Settings
from stofhamp.services import images, mailer


class TestContact:
    """Test cases for the contact form"""

    def test_build_contact_email_escapes_html(self):
        msg = mailer.build_contact_email(
            "<b>Ali</b>", "ali@example.com", "Price", "1 < 2 & 3",
            sender="site@example.com", recipient="inbox@example.com",
        )

        assert msg["Subject"] == "Contact form: Price"
        assert msg["Reply-To"] == "ali@example.com"
        assert msg["To"] == "inbox@example.com"
        body = msg.get_payload()[0].get_payload(decode=True).decode("utf-8")
        assert "&lt;b&gt;Ali&lt;/b&gt;" in body
        assert "1 &lt; 2 &amp; 3" in body

    @pytest.mark.asyncio
    async def test_unconfigured_mailer_raises(self):
        settings = Settings(smtp_user="", smtp_password="")
        with pytest.raises(mailer.MailerError):
            await mailer.send_contact_message("Ali", "ali@example.com", "Hi", "Hello", settings=settings)

    @pytest.mark.asyncio
    async def test_send_runs_smtp(self):
        settings = Settings(smtp_user="site@example.com", smtp_password="pw", smtp_port=465)
        with patch.object(mailer, "_send") as mock_send:
            await mailer.send_contact_message("Ali", "ali@example.com", "Hi", "Hello", settings=settings)

        mock_send.assert_called_once()
        sent = mock_send.call_args.args[1]
        assert sent["To"] == "site@example.com"

    @pytest.mark.asyncio
    async def test_contact_endpoint(self, client):
        with patch.object(mailer, "send_contact_message", new=AsyncMock()) as mock_send:
            response = await client.post(
                "/api/contact",
                json={"name": "Ali", "email": "ali@example.com", "subject": "Hi", "message": "Hello"},
            )

        assert response.status_code == 200
        assert response.json()["success"] is True
        mock_send.assert_awaited_once_with("Ali", "ali@example.com", "Hi", "Hello")

    @pytest.mark.asyncio
    async def test_contact_send_failure(self, client):
        failing = AsyncMock(side_effect=mailer.MailerError("smtp down"))
        with patch.object(mailer, "send_contact_message", new=failing):
            response = await client.post(
                "/api/contact",
                json={"name": "Ali", "email": "ali@example.com", "subject": "Hi", "message": "Hello"},
            )

        assert response.status_code == 500
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_contact_missing_field(self, client):
        response = await client.post(
            "/api/contact", json={"name": "Ali", "email": "ali@example.com", "subject": "Hi"}
        )
        assert response.status_code == 400


class TestUpload:
    """Test cases for image upload"""

    def test_sign_params(self):
        signature = images.sign_params({"timestamp": 1315060510, "folder": "listings"}, "abcd")
        # sha1("folder=listings&timestamp=1315060510abcd")
        assert len(signature) == 40
        assert signature == images.sign_params({"folder": "listings", "timestamp": 1315060510}, "abcd")

    @pytest.mark.asyncio
    async def test_upload_image_not_configured(self):
        with pytest.raises(images.ImageUploadError):
            await images.upload_image(b"data", "a.png", "image/png", settings=Settings(cloudinary_cloud_name=""))

    @pytest.mark.asyncio
    async def test_upload_image_success(self):
        settings = Settings(
            cloudinary_cloud_name="demo", cloudinary_api_key="key", cloudinary_api_secret="secret"
        )
        response = MagicMock(status_code=200)
        response.json.return_value = {"secure_url": "https://res.cloudinary.com/demo/a.png"}

        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=response)) as mock_post:
            url = await images.upload_image(b"data", "a.png", "image/png", settings=settings)

        assert url == "https://res.cloudinary.com/demo/a.png"
        assert mock_post.call_args.args[0] == "https://api.cloudinary.com/v1_1/demo/image/upload"
        assert mock_post.call_args.kwargs["data"]["folder"] == "listings"

    @pytest.mark.asyncio
    async def test_upload_image_rejected(self):
        settings = Settings(
            cloudinary_cloud_name="demo", cloudinary_api_key="key", cloudinary_api_secret="secret"
        )
        response = MagicMock(status_code=401, text="Invalid signature")

        with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=response)):
            with pytest.raises(images.ImageUploadError):
                await images.upload_image(b"data", "a.png", "image/png", settings=settings)

    @pytest.mark.asyncio
    async def test_upload_endpoint(self, client, auth_headers):
        upload = AsyncMock(return_value="https://res.cloudinary.com/demo/a.png")
        with patch.object(images, "upload_image", new=upload):
            response = await client.post(
                "/api/upload",
                files={"file": ("a.png", b"\x89PNG data", "image/png")},
                headers=auth_headers,
            )

        assert response.status_code == 200
        assert response.json()["data"] == {"url": "https://res.cloudinary.com/demo/a.png"}

    @pytest.mark.asyncio
    async def test_upload_rejects_non_images(self, client, auth_headers):
        response = await client.post(
            "/api/upload",
            files={"file": ("a.txt", b"hello", "text/plain")},
            headers=auth_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_upload_failure_is_bad_gateway(self, client, auth_headers):
        failing = AsyncMock(side_effect=images.ImageUploadError("Image hosting is not configured"))
        with patch.object(images, "upload_image", new=failing):
            response = await client.post(
                "/api/upload",
                files={"file": ("a.png", b"\x89PNG data", "image/png")},
                headers=auth_headers,
            )

        assert response.status_code == 502
        assert response.json()["message"] == "Image hosting is not configured"

    @pytest.mark.asyncio
    async def test_upload_requires_auth(self, client):
        response = await client.post(
            "/api/upload", files={"file": ("a.png", b"\x89PNG data", "image/png")}
        )
        assert response.status_code == 401


class TestHealth:
    """Test cases for the health check"""

    @pytest.mark.asyncio
    async def test_health(self, client, cache):
        cache.set("categories", [])

        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == "ok"
        assert data["cacheEntries"] == 1
