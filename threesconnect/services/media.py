"""
3sConnect Backend — Media Storage Collaborator
==============================================

What:  Abstract contract for storing post images, plus two implementations:
       Cloudinary (production) and a local directory (development).
Why:   The core only needs a durable public URL back. Where and how the
       image is stored, resized or converted is the collaborator's concern.
How:   PostService validates the payload with `validate_image`, calls
       `upload(...)` exactly once and stores the returned URL verbatim.
       Any storage failure is raised as UploadError, which aborts the post.

Upload pipeline:
    ┌────────────┐    ┌──────────────┐    ┌──────────────────┐
    │  Validate  │───▶│   Upload     │───▶│  Return URL      │
    │  (type,    │    │  (Cloudinary │    │  (secure_url or  │
    │   size)    │    │   or disk)   │    │   media_base_url)│
    └────────────┘    └──────────────┘    └──────────────────┘
"""

import hashlib
import logging
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import aiofiles
import httpx

from threesconnect.exceptions import UploadError, ValidationError

logger = logging.getLogger(__name__)

EXTENSIONS: Dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/heic": ".heic",
}


def validate_image(content: bytes, content_type: Optional[str], max_size: int) -> None:
    """
    Reject payloads that are not images or exceed the size limit.

    Raises:
        ValidationError (field="image") for empty, non-image or oversized files
    """
    if not content:
        raise ValidationError(message="The uploaded image is empty", field="image")

    if not content_type or not content_type.lower().startswith("image/"):
        raise ValidationError(
            message="Only image files can be uploaded",
            field="image",
            context={"content_type": content_type},
        )

    if len(content) > max_size:
        max_mb = max_size / (1024 * 1024)
        raise ValidationError(
            message=f"Image exceeds the maximum size of {max_mb:.0f}MB",
            field="image",
            context={"max_size": max_size, "actual_size": len(content)},
        )


class MediaStorage(ABC):
    """
    Contract for media collaborators.

    Contract:
        - upload() stores the bytes and returns a public URL
        - failures are raised as UploadError, never as provider exceptions
    """

    @abstractmethod
    async def upload(self, content: bytes, content_type: str, folder: str) -> str:
        """Store an image under a folder classifier and return its public URL."""
        ...

    async def aclose(self) -> None:
        return None


class CloudinaryMediaStorage(MediaStorage):
    """
    Signed uploads to the Cloudinary Upload API.

    Signature: SHA-1 of the sorted signed parameters joined as
    `key=value&...` followed by the API secret. `transformation` is applied
    on ingest (resize to fit 800x600, automatic quality and format).
    """

    UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        transformation: str = "",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.transformation = transformation
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    def sign(self, params: Dict[str, str]) -> str:
        payload = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] != "")
        return hashlib.sha1(f"{payload}{self.api_secret}".encode("utf-8")).hexdigest()

    async def upload(self, content: bytes, content_type: str, folder: str) -> str:
        params = {"folder": folder, "timestamp": str(int(time.time()))}
        if self.transformation:
            params["transformation"] = self.transformation
        data = {**params, "api_key": self.api_key, "signature": self.sign(params)}
        extension = EXTENSIONS.get(content_type.lower(), "")

        try:
            response = await self._client.post(
                self.UPLOAD_URL.format(cloud_name=self.cloud_name),
                data=data,
                files={"file": (f"upload{extension}", content, content_type)},
            )
            response.raise_for_status()
            secure_url = response.json().get("secure_url")
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Cloudinary upload failed: %s", str(e))
            raise UploadError(context={"provider": "cloudinary", "error": str(e)}) from e

        if not secure_url:
            raise UploadError(context={"provider": "cloudinary", "error": "missing secure_url"})

        logger.info("Uploaded %d bytes to Cloudinary folder %s", len(content), folder)
        return secure_url

    async def aclose(self) -> None:
        await self._client.aclose()


class LocalMediaStorage(MediaStorage):
    """
    Stores images on the local filesystem.

    Directory Structure:
        storage/<folder>/YYYY/MM/DD/<uuid>.<ext>

    URLs are `media_base_url` + the relative path; main.py mounts the
    storage root as static files when this backend is active.
    """

    def __init__(self, storage_root: str, base_url: str):
        self.storage_root = Path(storage_root).resolve()
        self.base_url = base_url.rstrip("/")
        self.storage_root.mkdir(parents=True, exist_ok=True)

    def _relative_path(self, folder: str, content_type: str) -> str:
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        extension = EXTENSIONS.get(content_type.lower(), ".img")
        return f"{folder}/{date_dir}/{uuid.uuid4()}{extension}"

    async def upload(self, content: bytes, content_type: str, folder: str) -> str:
        relative_path = self._relative_path(folder, content_type)
        absolute_path = self.storage_root / relative_path
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", absolute_path, str(e))
            raise UploadError(context={"provider": "local", "error": str(e)}) from e

        logger.info("Stored image %s (%d bytes)", relative_path, len(content))
        return f"{self.base_url}/{relative_path}"
