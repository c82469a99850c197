"""
Badge placement and alpha compositing.

Geometry:
    badge_width  = clamp(round(source_width * BADGE_SCALE), BADGE_MIN_WIDTH, BADGE_MAX_WIDTH)
    badge_height = badge aspect ratio preserved
    x, y         = top-right corner, BADGE_INSET px from the top and right edges

When the canvas is narrower than badge + inset, x is clamped to 0 and the
badge clips on the right. The canvas is never resized.
"""

import math
from typing import Optional, Tuple

from PIL import Image

from src.core.config import settings
from src.core.logging import get_logger
from src.engines.poster.schemas import PlacementGeometry

logger = get_logger(__name__)

RESAMPLE = Image.Resampling.LANCZOS


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def clamp(value: int, floor: int, ceiling: int) -> int:
    return max(floor, min(ceiling, value))


def compute_badge_width(
    source_width: int,
    scale: Optional[float] = None,
    min_width: Optional[int] = None,
    max_width: Optional[int] = None,
) -> int:
    """Target badge width for a source image of the given width."""
    scale = settings.BADGE_SCALE if scale is None else scale
    min_width = settings.BADGE_MIN_WIDTH if min_width is None else min_width
    max_width = settings.BADGE_MAX_WIDTH if max_width is None else max_width
    return clamp(round_half_up(source_width * scale), min_width, max_width)


def compute_placement(
    source_size: Tuple[int, int],
    badge_size: Tuple[int, int],
    inset: Optional[int] = None,
) -> PlacementGeometry:
    """
    Compute badge size and anchor for a source / badge pair.

    Args:
        source_size: (width, height) of the canvas
        badge_size: (width, height) of the badge as produced by its source
        inset: distance from the top and right edges
    """
    source_width, source_height = source_size
    native_width, native_height = badge_size
    inset = settings.BADGE_INSET if inset is None else inset

    badge_width = compute_badge_width(source_width)
    badge_height = max(1, round_half_up(native_height * badge_width / native_width))

    x = max(0, source_width - badge_width - inset)
    y = inset
    clipped = x + badge_width > source_width or y + badge_height > source_height

    return PlacementGeometry(
        source_width=source_width,
        source_height=source_height,
        badge_width=badge_width,
        badge_height=badge_height,
        x=x,
        y=y,
        clipped=clipped,
    )


def resize_badge(badge: Image.Image, geometry: PlacementGeometry) -> Image.Image:
    """Return a resized RGBA copy of the badge; the input is left untouched."""
    target = (geometry.badge_width, geometry.badge_height)
    source = badge if badge.mode == "RGBA" else badge.convert("RGBA")

    if badge.width < geometry.badge_width:
        logger.warning(
            "badge_upscaled",
            native_width=badge.width,
            target_width=geometry.badge_width
        )

    if source.size == target:
        return source.copy() if source is badge else source
    resized = source.resize(target, RESAMPLE)
    if source is not badge:
        source.close()
    return resized


def composite(
    source: Image.Image,
    badge: Image.Image,
    geometry: PlacementGeometry,
) -> Image.Image:
    """
    Paint an already-sized badge over the source at geometry.(x, y).

    Straight-alpha "over" operator; pixels outside the badge box keep their
    source values. Returns a new RGBA raster of the source's dimensions.
    """
    canvas = source.convert("RGBA") if source.mode != "RGBA" else source.copy()
    overlay = badge if badge.mode == "RGBA" else badge.convert("RGBA")
    # Pillow crops the overlay box to the canvas, so right/bottom overflow just clips.
    canvas.alpha_composite(overlay, dest=(geometry.x, geometry.y))
    if overlay is not badge:
        overlay.close()
    return canvas


def apply_badge(source: Image.Image, badge: Image.Image) -> Tuple[Image.Image, PlacementGeometry]:
    """Placement + resize + composite in one call."""
    geometry = compute_placement(source.size, badge.size)
    sized = resize_badge(badge, geometry)
    try:
        result = composite(source, sized, geometry)
    finally:
        sized.close()

    logger.debug(
        "badge_composited",
        badge_width=geometry.badge_width,
        badge_height=geometry.badge_height,
        x=geometry.x,
        y=geometry.y,
        clipped=geometry.clipped
    )
    return result, geometry
