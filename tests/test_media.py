"""
3sConnect Backend — Media Storage Tests
=======================================

What we test:
    ✅ validate_image: type and size limits (boundary at max size)
    ✅ Cloudinary: signed multipart upload, secure_url returned, failures
       become UploadError
    ✅ Local storage: file written under folder/YYYY/MM/DD, URL returned
"""

import hashlib
from pathlib import Path

import httpx
import pytest

from threesconnect.exceptions import UploadError, ValidationError
from threesconnect.services.media import (
    CloudinaryMediaStorage,
    LocalMediaStorage,
    validate_image,
)

MAX_SIZE = 5 * 1024 * 1024


class TestValidateImage:

    def test_jpeg_accepted(self, sample_image_bytes):
        validate_image(sample_image_bytes, "image/jpeg", MAX_SIZE)

    def test_content_type_case_insensitive(self, sample_image_bytes):
        validate_image(sample_image_bytes, "IMAGE/PNG", MAX_SIZE)

    def test_exactly_max_size_accepted(self):
        validate_image(b"\x00" * MAX_SIZE, "image/png", MAX_SIZE)

    def test_over_max_size_rejected(self):
        with pytest.raises(ValidationError, match="maximum size"):
            validate_image(b"\x00" * (MAX_SIZE + 1), "image/png", MAX_SIZE)

    @pytest.mark.parametrize("content_type", ["application/pdf", "video/mp4", "", None])
    def test_non_image_rejected(self, sample_image_bytes, content_type):
        with pytest.raises(ValidationError, match="Only image files"):
            validate_image(sample_image_bytes, content_type, MAX_SIZE)

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            validate_image(b"", "image/png", MAX_SIZE)


class TestCloudinaryMediaStorage:

    def _storage(self, handler) -> CloudinaryMediaStorage:
        return CloudinaryMediaStorage(
            cloud_name="demo",
            api_key="key123",
            api_secret="secret456",
            transformation="c_limit,w_800,h_600/q_auto/f_auto",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

    def test_signature(self):
        storage = self._storage(lambda request: httpx.Response(200))
        expected = hashlib.sha1(b"folder=posts&timestamp=1700000000secret456").hexdigest()
        assert storage.sign({"timestamp": "1700000000", "folder": "posts"}) == expected

    @pytest.mark.asyncio
    async def test_upload_returns_secure_url(self, sample_image_bytes):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["body"] = request.read()
            return httpx.Response(200, json={"secure_url": "https://res.cloudinary.com/demo/x.jpg"})

        url = await self._storage(handler).upload(sample_image_bytes, "image/jpeg", "3sConnect_posts")

        assert url == "https://res.cloudinary.com/demo/x.jpg"
        assert captured["url"] == "https://api.cloudinary.com/v1_1/demo/image/upload"
        assert b"3sConnect_posts" in captured["body"]
        assert b"c_limit,w_800,h_600/q_auto/f_auto" in captured["body"]
        assert b'name="signature"' in captured["body"]
        assert sample_image_bytes in captured["body"]

    @pytest.mark.asyncio
    async def test_provider_error_raises_upload_error(self, sample_image_bytes):
        storage = self._storage(lambda request: httpx.Response(500, json={"error": "boom"}))
        with pytest.raises(UploadError):
            await storage.upload(sample_image_bytes, "image/jpeg", "3sConnect_posts")

    @pytest.mark.asyncio
    async def test_missing_secure_url_raises_upload_error(self, sample_image_bytes):
        storage = self._storage(lambda request: httpx.Response(200, json={}))
        with pytest.raises(UploadError):
            await storage.upload(sample_image_bytes, "image/jpeg", "3sConnect_posts")

    @pytest.mark.asyncio
    async def test_network_error_raises_upload_error(self, sample_image_bytes):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UploadError):
            await self._storage(handler).upload(sample_image_bytes, "image/jpeg", "posts")


class TestLocalMediaStorage:

    @pytest.mark.asyncio
    async def test_file_written_and_url_returned(self, tmp_path, sample_image_bytes):
        storage = LocalMediaStorage(str(tmp_path), "http://localhost:8000/media/")

        url = await storage.upload(sample_image_bytes, "image/png", "3sConnect_posts")

        assert url.startswith("http://localhost:8000/media/3sConnect_posts/")
        assert url.endswith(".png")
        relative = url[len("http://localhost:8000/media/"):]
        stored = Path(tmp_path) / relative
        assert stored.read_bytes() == sample_image_bytes
        # folder/YYYY/MM/DD/<uuid>.png
        assert len(Path(relative).parts) == 5

    @pytest.mark.asyncio
    async def test_each_upload_gets_unique_name(self, tmp_path, sample_image_bytes):
        storage = LocalMediaStorage(str(tmp_path), "http://localhost:8000/media")

        first = await storage.upload(sample_image_bytes, "image/jpeg", "posts")
        second = await storage.upload(sample_image_bytes, "image/jpeg", "posts")

        assert first != second
