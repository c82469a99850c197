"""
Input Resolver

Turns the inbound form fields into source image bytes:
- non-empty upload wins when both an upload and a URL are supplied
- otherwise the URL is fetched once, with the client's timeout
"""

from typing import Optional
from urllib.parse import urlparse

import httpx

from src.core.config import settings
from src.core.exceptions import FetchFailedError, InvalidInputError, NoInputProvidedError
from src.core.logging import get_logger
from src.core.metrics import record_remote_fetch
from src.engines.poster.schemas import InputOrigin, SourceInput

logger = get_logger(__name__)

ALLOWED_SCHEMES = ("http", "https")


def validate_source_url(url: str) -> str:
    """Return the stripped URL if it is an absolute http(s) URL."""
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.netloc:
        raise InvalidInputError(
            "Image URL must be an absolute http(s) URL",
            details={"url": url}
        )
    return url


class InputResolver:
    """Resolve an upload or a URL to raw image bytes."""

    def __init__(self, client: httpx.AsyncClient, max_bytes: Optional[int] = None):
        self.client = client
        self.max_bytes = max_bytes or settings.MAX_IMAGE_SIZE_BYTES

    def _too_large(self, size: int) -> InvalidInputError:
        limit_mb = self.max_bytes / (1024 * 1024)
        return InvalidInputError(
            f"Image exceeds maximum allowed size ({limit_mb:.0f}MB)",
            details={"size_bytes": size, "max_bytes": self.max_bytes}
        )

    async def resolve(self, upload: Optional[bytes] = None, url: Optional[str] = None) -> SourceInput:
        """
        Args:
            upload: bytes of the `file` form field, empty/None when absent
            url: value of the `url` form field

        Raises:
            NoInputProvidedError: neither input present
            InvalidInputError: malformed URL or oversized input
            FetchFailedError: URL fetch failed or returned non-2xx
        """
        if upload:
            if len(upload) > self.max_bytes:
                raise self._too_large(len(upload))
            if url and url.strip():
                logger.info("input_precedence_upload", ignored_url=url.strip())
            return SourceInput(data=upload, origin=InputOrigin.UPLOAD)

        if not url or not url.strip():
            raise NoInputProvidedError()

        url = validate_source_url(url)
        data = await self.fetch(url)
        return SourceInput(data=data, origin=InputOrigin.URL, url=url)

    async def fetch(self, url: str) -> bytes:
        """GET `url` and return the body, enforcing the size limit while streaming."""
        logger.info("source_fetch_started", url=url)
        try:
            async with self.client.stream("GET", url) as response:
                if not response.is_success:
                    record_remote_fetch("source", "error", response.status_code)
                    raise FetchFailedError(
                        f"Cannot fetch image URL (HTTP {response.status_code})",
                        url=url,
                        http_status=response.status_code
                    )

                declared = response.headers.get("Content-Length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise self._too_large(int(declared))

                chunks = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > self.max_bytes:
                        raise self._too_large(total)
                    chunks.append(chunk)
        except httpx.TimeoutException as e:
            record_remote_fetch("source", "timeout")
            raise FetchFailedError("Timed out fetching image URL", url=url) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            record_remote_fetch("source", "error")
            raise FetchFailedError(f"Cannot fetch image URL: {e}", url=url) from e

        record_remote_fetch("source", "success", response.status_code)
        logger.info("source_fetch_completed", size_bytes=total)
        return b"".join(chunks)
