"""
Image reference resolution.

Turns the opaque image references stored on a record into decoded
image bytes. Supported references:

- http:// and https:// URLs, fetched with httpx
- data: URLs (base64 or percent-encoded)
- anything else is a local file path (a file:// prefix is allowed)

Each reference resolves to a ResolvedImage or a ResolutionFailed; one bad
image never fails its siblings.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, unquote_to_bytes

import httpx
from PIL import Image, UnidentifiedImageError

from sitediary.domain.errors import ResourceResolutionFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedImage:
    """Decoded image bytes with their pixel dimensions."""
    reference: str
    data: bytes
    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        """Height divided by width."""
        return self.height / self.width


@dataclass(frozen=True)
class ResolutionFailed:
    """An image reference that could not be fetched or decoded."""
    reference: str
    reason: str


ImageResult = ResolvedImage | ResolutionFailed


class ImageResolver:
    """
    Resolve image references concurrently.

    Args:
        timeout: Per-fetch timeout in seconds for remote images
        concurrency: Fetch limit used when the caller passes no semaphore
        transport: Optional httpx async transport (httpx.MockTransport in tests)
        base_dir: Directory relative file paths are resolved against

    Example:
        resolver = ImageResolver(timeout=20)
        results = await resolver.resolve_all(record.image_references)
    """

    def __init__(
        self,
        timeout: float = 20.0,
        concurrency: int = 4,
        transport: httpx.AsyncBaseTransport | None = None,
        base_dir: Path | str | None = None,
    ):
        self.timeout = timeout
        self.concurrency = concurrency
        self.transport = transport
        self.base_dir = Path(base_dir) if base_dir is not None else None

    async def resolve_all(
        self,
        references: Iterable[str],
        semaphore: asyncio.Semaphore | None = None,
    ) -> list[ImageResult]:
        """
        Resolve every reference, one task each, joined before returning.

        Args:
            references: Image references in render order
            semaphore: Limit shared with other resolutions (e.g. a whole batch)

        Returns:
            One result per reference, in input order
        """
        semaphore = semaphore or asyncio.Semaphore(self.concurrency)
        tasks = [
            asyncio.create_task(self.resolve(reference, semaphore))
            for reference in references
        ]
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    async def resolve(
        self, reference: str, semaphore: asyncio.Semaphore | None = None
    ) -> ImageResult:
        """Resolve one reference; failures are returned, not raised."""
        try:
            if semaphore is None:
                data = await self.fetch_bytes(reference)
            else:
                async with semaphore:
                    data = await self.fetch_bytes(reference)
            width, height = identify_image(reference, data)
        except ResourceResolutionFailure as e:
            logger.warning("Image unavailable: %s", e)
            return ResolutionFailed(reference=reference, reason=e.reason)

        return ResolvedImage(reference=reference, data=data, width=width, height=height)

    async def fetch_bytes(self, reference: str) -> bytes:
        """
        Load the raw bytes behind a reference.

        Raises:
            ResourceResolutionFailure: If the bytes cannot be obtained
        """
        if not reference or not reference.strip():
            raise ResourceResolutionFailure(reference, "empty reference")
        if reference.startswith(("http://", "https://")):
            return await self._fetch_remote(reference)
        if reference.startswith("data:"):
            return decode_data_url(reference)
        return await asyncio.to_thread(self._read_file, reference)

    async def _fetch_remote(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ResourceResolutionFailure(url, f"timed out after {self.timeout:g}s") from e
        except httpx.HTTPStatusError as e:
            raise ResourceResolutionFailure(url, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ResourceResolutionFailure(url, f"request failed: {e}") from e

        logger.debug("Fetched %d bytes from %s", len(response.content), url)
        return response.content

    def _read_file(self, reference: str) -> bytes:
        raw = unquote(reference[len("file://"):]) if reference.startswith("file://") else reference
        path = Path(raw)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        try:
            return path.read_bytes()
        except OSError as e:
            raise ResourceResolutionFailure(reference, f"cannot read file: {e.strerror or e}") from e


def decode_data_url(reference: str) -> bytes:
    """
    Decode a data: URL payload.

    Raises:
        ResourceResolutionFailure: If the URL is malformed
    """
    header, sep, payload = reference[len("data:"):].partition(",")
    if not sep:
        raise ResourceResolutionFailure(reference, "malformed data URL")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ResourceResolutionFailure(reference, "invalid base64 payload") from e
    return unquote_to_bytes(payload)


def identify_image(reference: str, data: bytes) -> tuple[int, int]:
    """
    Decode image bytes far enough to know their pixel size.

    Raises:
        ResourceResolutionFailure: If Pillow cannot read the bytes
    """
    if not data:
        raise ResourceResolutionFailure(reference, "empty image")
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            width, height = image.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ResourceResolutionFailure(reference, f"cannot decode image: {e}") from e
    if width <= 0 or height <= 0:
        raise ResourceResolutionFailure(reference, "image has no pixels")
    return width, height
