"""
Badge Sources

Three interchangeable ways to get the "4K" badge raster, all behind
BadgeSource.produce(target_width):

- EmbeddedBadgeSource: packaged PNG (500x250), no network
- RemoteBadgeSource: HTTP GET of a badge URL, optionally cached process-wide
- SynthesizedBadgeSource: gradient rounded rectangle + bold label drawn
  with Pillow at exactly the requested width

The implementation is picked once at startup by create_badge_source().
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Tuple

import httpx
from PIL import Image, ImageDraw, ImageFont

from src.core.config import settings
from src.core.exceptions import BadgeUnavailableError, DecodeFailedError
from src.core.logging import get_logger
from src.core.metrics import record_remote_fetch
from src.engines.poster.badge_cache import BadgeCache
from src.engines.poster.codec import decode_image
from src.engines.poster.compositor import round_half_up

logger = get_logger(__name__)

BADGE_ASSET_PATH = Path(__file__).resolve().parents[2] / "assets" / "badge_4k.png"

GOLD_TOP = (255, 215, 0)
GOLD_BOTTOM = (184, 134, 11)
LABEL_COLOR = (26, 26, 26)
CORNER_RADIUS_RATIO = 0.16  # of badge height


def _as_rgba(image: Image.Image) -> Image.Image:
    if image.mode == "RGBA":
        return image
    converted = image.convert("RGBA")
    image.close()
    return converted


class BadgeSource(ABC):
    """Anything that can hand the compositor a fresh RGBA badge raster."""

    name: str = "base"

    @abstractmethod
    async def produce(self, target_width: int) -> Image.Image:
        """
        Return a new badge raster owned by the caller.

        Args:
            target_width: width the badge will be placed at; sources that
                render vector art use it directly, bitmap sources ignore it

        Raises:
            BadgeUnavailableError: the badge could not be produced
        """


# =============================================================================
# Embedded asset
# =============================================================================

class EmbeddedBadgeSource(BadgeSource):
    """Decode the badge shipped inside the package."""

    name = "embedded"

    def __init__(self, asset_path: Path = BADGE_ASSET_PATH):
        self.asset_path = asset_path
        self._data = asset_path.read_bytes()

    async def produce(self, target_width: int) -> Image.Image:
        try:
            badge = decode_image(self._data)
        except DecodeFailedError as e:
            logger.error("embedded_badge_corrupt", path=str(self.asset_path), error=e.message)
            raise BadgeUnavailableError(
                f"Embedded badge asset is corrupt: {e.message}",
                source=self.name
            ) from e
        return _as_rgba(badge)


# =============================================================================
# Remote fetch
# =============================================================================

class RemoteBadgeSource(BadgeSource):
    """Fetch the badge from a URL; bytes are reused via BadgeCache when given one."""

    name = "remote"

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        cache: Optional[BadgeCache] = None
    ):
        self.client = client
        self.url = url
        self.cache = cache

    async def _fetch(self) -> bytes:
        """GET the badge once and make sure it decodes before anyone caches it."""
        logger.info("badge_fetch_started", url=self.url)
        try:
            response = await self.client.get(self.url)
        except httpx.TimeoutException as e:
            record_remote_fetch("badge", "timeout")
            raise BadgeUnavailableError("Badge fetch timed out", source=self.name) from e
        except httpx.HTTPError as e:
            record_remote_fetch("badge", "error")
            raise BadgeUnavailableError(f"Badge fetch failed: {e}", source=self.name) from e

        record_remote_fetch(
            "badge",
            "success" if response.is_success else "error",
            response.status_code
        )
        if not response.is_success:
            raise BadgeUnavailableError(
                f"Badge fetch returned HTTP {response.status_code}",
                source=self.name,
                http_status=response.status_code
            )

        data = response.content
        try:
            probe = await asyncio.to_thread(decode_image, data)
        except DecodeFailedError as e:
            raise BadgeUnavailableError(
                f"Badge response is not a usable image: {e.message}",
                source=self.name
            ) from e
        probe.close()

        logger.info("badge_fetch_completed", size_bytes=len(data))
        return data

    async def produce(self, target_width: int) -> Image.Image:
        if self.cache is not None:
            data = await self.cache.get_or_fetch(self._fetch)
        else:
            data = await self._fetch()

        try:
            badge = await asyncio.to_thread(decode_image, data)
        except DecodeFailedError as e:
            raise BadgeUnavailableError(
                f"Badge image could not be decoded: {e.message}",
                source=self.name
            ) from e
        return _as_rgba(badge)


# =============================================================================
# Synthesized vector art
# =============================================================================

FONT_CANDIDATES = [
    "DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/DejaVuSans-Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "C:/Windows/Fonts/arialbd.ttf",
]

_font_cache: Dict[int, ImageFont.ImageFont] = {}


def get_label_font(size: int):
    """Bold TrueType font at `size` px, cached; Pillow's default font as last resort."""
    if size in _font_cache:
        return _font_cache[size]

    font = None
    for candidate in FONT_CANDIDATES:
        try:
            font = ImageFont.truetype(candidate, size)
            break
        except OSError:
            continue

    if font is None:
        logger.warning("badge_font_fallback", size=size)
        font = ImageFont.load_default(size=size)

    _font_cache[size] = font
    return font


def _vertical_gradient(size: Tuple[int, int], top: Tuple[int, int, int], bottom: Tuple[int, int, int]) -> Image.Image:
    ramp = Image.linear_gradient("L").resize(size)
    return Image.composite(
        Image.new("RGBA", size, bottom + (255,)),
        Image.new("RGBA", size, top + (255,)),
        ramp
    )


def render_badge(
    width: int,
    label: str = "4K",
    aspect_ratio: float = 2.0,
    font_ratio: float = 0.5,
) -> Image.Image:
    """
    Draw the badge directly at `width` x `width / aspect_ratio`.

    Rounded rectangle, top-to-bottom gold gradient, label centered in bold
    at font_ratio * width px.
    """
    width = max(1, width)
    height = max(1, round_half_up(width / aspect_ratio))
    size = (width, height)

    fill = _vertical_gradient(size, GOLD_TOP, GOLD_BOTTOM)
    mask = Image.new("L", size, 0)
    ImageDraw.Draw(mask).rounded_rectangle(
        (0, 0, width - 1, height - 1),
        radius=max(1, round_half_up(height * CORNER_RADIUS_RATIO)),
        fill=255
    )

    badge = Image.new("RGBA", size, (0, 0, 0, 0))
    badge.paste(fill, (0, 0), mask)
    fill.close()
    mask.close()

    draw = ImageDraw.Draw(badge)
    font = get_label_font(max(1, round_half_up(width * font_ratio)))
    left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
    x = (width - (right - left)) / 2 - left
    y = (height - (bottom - top)) / 2 - top
    draw.text((x, y), label, fill=LABEL_COLOR + (255,), font=font)

    return badge


class SynthesizedBadgeSource(BadgeSource):
    """Render the badge per request at the exact size it will be placed at."""

    name = "synthesized"

    def __init__(
        self,
        label: str = "4K",
        aspect_ratio: float = 2.0,
        font_ratio: float = 0.5
    ):
        self.label = label
        self.aspect_ratio = aspect_ratio
        self.font_ratio = font_ratio

    async def produce(self, target_width: int) -> Image.Image:
        return await asyncio.to_thread(
            render_badge,
            target_width,
            self.label,
            self.aspect_ratio,
            self.font_ratio
        )


# =============================================================================
# Factory
# =============================================================================

def create_badge_source(
    kind: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    cache: Optional[BadgeCache] = None,
) -> BadgeSource:
    """Build the configured badge source (BADGE_SOURCE unless `kind` is given)."""
    kind = kind or settings.BADGE_SOURCE

    if kind == "embedded":
        return EmbeddedBadgeSource()
    if kind == "remote":
        if client is None:
            raise ValueError("remote badge source needs an httpx.AsyncClient")
        return RemoteBadgeSource(client, settings.BADGE_URL, cache=cache)
    if kind == "synthesized":
        return SynthesizedBadgeSource(
            label=settings.BADGE_LABEL,
            aspect_ratio=settings.BADGE_ASPECT_RATIO,
            font_ratio=settings.BADGE_LABEL_FONT_RATIO
        )
    raise ValueError(f"Unknown badge source: {kind}")
