"""
image_loader.py — Fetch image bytes and encode them as data URIs.

Remote images are fetched with httpx; anything that is not an http(s) URL
is read from the local filesystem. The MIME type comes from the response
headers when available, otherwise it is sniffed with Pillow.
"""

import asyncio
import base64
import logging
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple

import httpx
from PIL import Image, UnidentifiedImageError

from slidesvg.errors import FillResolutionError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"


def sniff_mime_type(data: bytes) -> Optional[str]:
    """Detect an image MIME type from its bytes, or None if unrecognized."""
    try:
        with Image.open(BytesIO(data)) as image:
            return Image.MIME.get(image.format or "")
    except (UnidentifiedImageError, OSError):
        return None


def encode_data_uri(data: bytes, mime_type: str) -> str:
    """Encode bytes as a base64 data URI."""
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{b64}"


class ImageLoader:
    """Loads images referenced by image fills.

    A shared ``httpx.AsyncClient`` may be passed in; otherwise a client is
    opened per request. Sources that are not http(s) URLs are read from the
    local filesystem only when ``allow_local_files`` is set.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        allow_local_files: bool = False,
    ):
        self.client = client
        self.timeout = timeout
        self.allow_local_files = allow_local_files

    async def fetch(self, source: str) -> Tuple[bytes, Optional[str]]:
        """
        Fetch raw image bytes.

        Returns:
            (data, content type from the response headers or None)

        Raises:
            FillResolutionError: if the image cannot be fetched or read
        """
        if source.startswith(("http://", "https://")):
            try:
                if self.client is not None:
                    response = await self.client.get(source)
                else:
                    async with httpx.AsyncClient(timeout=self.timeout) as client:
                        response = await client.get(source)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise FillResolutionError(source, str(e)) from e

            content_type = response.headers.get("content-type", "")
            mime_type = content_type.split(";")[0].strip() or None
            return response.content, mime_type

        if not self.allow_local_files:
            raise FillResolutionError(source, "only http(s) and data: sources are allowed")

        try:
            data = await asyncio.to_thread(Path(source).read_bytes)
        except OSError as e:
            raise FillResolutionError(source, str(e)) from e
        return data, None

    async def to_data_uri(self, source: str) -> str:
        """Return the image as a base64 data URI. Data URIs pass through."""
        if source.startswith("data:"):
            return source

        data, mime_type = await self.fetch(source)
        if not mime_type or not mime_type.startswith("image/"):
            mime_type = sniff_mime_type(data) or mime_type or DEFAULT_MIME_TYPE

        logger.debug(f"Embedded image {source} ({mime_type}, {len(data)} bytes)")
        return encode_data_uri(data, mime_type)
