"""
FastAPI Dependencies

Provides dependency injection for:
- Shared httpx.AsyncClient (one per process, created in lifespan)
- Badge source (selected once at startup)
- Remote badge cache (process-wide, only when BADGE_SOURCE=remote)
- PosterPipeline (per-request, stateless)
- Form input reading
"""

from typing import Optional

import httpx
from fastapi import Depends, File, Form, Request, UploadFile

from src.core.config import settings
from src.engines.poster.badge_cache import BadgeCache
from src.engines.poster.badges import BadgeSource
from src.engines.poster.pipeline import PosterPipeline
from src.engines.poster.resolver import InputResolver


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Returns the shared outbound HTTP client."""
    return request.app.state.http_client


def get_badge_source(request: Request) -> BadgeSource:
    """Returns the badge source picked at startup."""
    return request.app.state.badge_source


def get_badge_cache(request: Request) -> Optional[BadgeCache]:
    """Returns the remote badge cache, or None when not in use."""
    return getattr(request.app.state, "badge_cache", None)


def get_pipeline(
    client: httpx.AsyncClient = Depends(get_http_client),
    badge_source: BadgeSource = Depends(get_badge_source),
) -> PosterPipeline:
    """Returns a PosterPipeline bound to the shared client and badge source."""
    return PosterPipeline(
        resolver=InputResolver(client),
        badge_source=badge_source,
        jpeg_quality=settings.JPEG_QUALITY
    )


class PosterForm:
    """The `file` / `url` form fields of a poster request."""

    def __init__(
        self,
        file: Optional[UploadFile] = File(None),
        url: Optional[str] = Form(None),
    ):
        self.file = file
        self.url = url

    async def read_upload(self) -> Optional[bytes]:
        """Upload bytes, or None for a missing or zero-length file field."""
        if self.file is None:
            return None
        try:
            data = await self.file.read()
        finally:
            await self.file.close()
        return data or None
