"""
System Endpoints

GET    /api/v1/metrics      - Prometheus metrics
GET    /api/v1/badge/cache  - remote badge cache state
DELETE /api/v1/badge/cache  - drop the cached badge so the next request refetches
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response

from src.api.dependencies import get_badge_cache, get_badge_source
from src.core.logging import get_logger
from src.core.metrics import get_metrics, get_metrics_content_type
from src.engines.poster.badge_cache import BadgeCache
from src.engines.poster.badges import BadgeSource

logger = get_logger(__name__)
router = APIRouter()


@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.

    Exposes:
    - poster_pipeline_stage_latency_seconds (per stage)
    - posters_total (by outcome and error kind)
    - remote_fetches_total
    - badge_cache_hits_total / badge_cache_misses_total
    - http_requests_total
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )


@router.get("/badge/cache")
async def badge_cache_stats(
    badge_source: BadgeSource = Depends(get_badge_source),
    cache: Optional[BadgeCache] = Depends(get_badge_cache),
):
    """Cache statistics; `enabled` is false unless the remote source is cached."""
    if cache is None:
        return {"badge_source": badge_source.name, "enabled": False}
    return {"badge_source": badge_source.name, "enabled": True, **cache.stats()}


@router.delete("/badge/cache")
async def invalidate_badge_cache(cache: Optional[BadgeCache] = Depends(get_badge_cache)):
    """Invalidate the remote badge cache."""
    if cache is None:
        return {"invalidated": False}
    cache.invalidate()
    return {"invalidated": True}
