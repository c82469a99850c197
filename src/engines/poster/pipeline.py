"""
Poster Pipeline Orchestrator

One run per inbound request:

    start -> resolving_input -> decoding_source -> acquiring_badge
          -> compositing -> encoding -> success

Any stage may end the run in `failure` with a typed ErrorKind. Nothing is
retried; remote fetches are attempted exactly once. CPU-bound stages run in
a worker thread so the event loop keeps serving other requests.
"""

import asyncio
import time
import uuid
from typing import List, Optional, Tuple

from PIL import Image

from src.core.config import settings
from src.core.exceptions import BadgeUnavailableError, PosterBaseException
from src.core.logging import LogContext, get_logger, request_id_var, with_logging
from src.core.metrics import record_poster_outcome, track_stage_latency
from src.engines.poster.badges import BadgeSource
from src.engines.poster.codec import decode_image, encode_jpeg
from src.engines.poster.compositor import apply_badge, compute_badge_width
from src.engines.poster.resolver import InputResolver
from src.engines.poster.schemas import (
    PipelineResult,
    PipelineState,
    PlacementGeometry,
    SourceInput,
)

logger = get_logger(__name__)


class PosterPipeline:
    """Resolve -> decode -> badge -> composite -> encode."""

    def __init__(
        self,
        resolver: InputResolver,
        badge_source: BadgeSource,
        jpeg_quality: Optional[int] = None
    ):
        self.resolver = resolver
        self.badge_source = badge_source
        self.jpeg_quality = settings.JPEG_QUALITY if jpeg_quality is None else jpeg_quality

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    @with_logging(PipelineState.RESOLVING_INPUT.value)
    async def _resolve(self, upload: Optional[bytes], url: Optional[str]) -> SourceInput:
        with track_stage_latency(PipelineState.RESOLVING_INPUT.value):
            return await self.resolver.resolve(upload=upload, url=url)

    @with_logging(PipelineState.DECODING_SOURCE.value)
    def _decode(self, data: bytes) -> Image.Image:
        with track_stage_latency(PipelineState.DECODING_SOURCE.value):
            return decode_image(data)

    @with_logging(PipelineState.ACQUIRING_BADGE.value)
    async def _acquire_badge(self, target_width: int) -> Image.Image:
        with track_stage_latency(PipelineState.ACQUIRING_BADGE.value):
            try:
                return await self.badge_source.produce(target_width)
            except PosterBaseException:
                raise
            except (OSError, ValueError, MemoryError) as e:
                raise BadgeUnavailableError(
                    f"Badge could not be produced: {e}",
                    source=self.badge_source.name
                ) from e

    @with_logging(PipelineState.COMPOSITING.value)
    def _composite(self, source: Image.Image, badge: Image.Image) -> Tuple[Image.Image, PlacementGeometry]:
        with track_stage_latency(PipelineState.COMPOSITING.value):
            return apply_badge(source, badge)

    @with_logging(PipelineState.ENCODING.value)
    def _encode(self, image: Image.Image) -> bytes:
        with track_stage_latency(PipelineState.ENCODING.value):
            return encode_jpeg(image, self.jpeg_quality)

    # -------------------------------------------------------------------------
    # Orchestration
    # -------------------------------------------------------------------------

    async def _execute(
        self,
        stages: List[PipelineState],
        upload: Optional[bytes],
        url: Optional[str]
    ) -> Tuple[bytes, PlacementGeometry]:
        source = badge = composited = None
        try:
            stages.append(PipelineState.RESOLVING_INPUT)
            source_input = await self._resolve(upload, url)

            stages.append(PipelineState.DECODING_SOURCE)
            source = await asyncio.to_thread(self._decode, source_input.data)
            logger.info(
                "source_decoded",
                origin=source_input.origin.value,
                width=source.width,
                height=source.height,
                mode=source.mode
            )
            del source_input

            stages.append(PipelineState.ACQUIRING_BADGE)
            badge = await self._acquire_badge(compute_badge_width(source.width))

            stages.append(PipelineState.COMPOSITING)
            composited, geometry = await asyncio.to_thread(self._composite, source, badge)

            stages.append(PipelineState.ENCODING)
            jpeg_bytes = await asyncio.to_thread(self._encode, composited)
            return jpeg_bytes, geometry
        finally:
            for image in (source, badge, composited):
                if image is not None:
                    image.close()

    async def _run(
        self,
        upload: Optional[bytes],
        url: Optional[str],
        request_id: Optional[str]
    ) -> Tuple[PipelineResult, Optional[PosterBaseException]]:
        request_id = request_id or request_id_var.get() or str(uuid.uuid4())
        stages = [PipelineState.START]
        started = time.perf_counter()

        with LogContext(request_id=request_id):
            try:
                jpeg_bytes, geometry = await self._execute(stages, upload, url)
            except PosterBaseException as e:
                failed_stage = stages[-1]
                if e.stage is None:
                    e.stage = failed_stage.value
                stages.append(PipelineState.FAILURE)
                duration = time.perf_counter() - started
                record_poster_outcome("failure", duration, e.kind.value if e.kind else "unknown")
                logger.warning(
                    "poster_failed",
                    kind=e.kind.value if e.kind else None,
                    failed_stage=failed_stage.value,
                    error=e.message
                )
                result = PipelineResult(
                    request_id=request_id,
                    state=PipelineState.FAILURE,
                    error_kind=e.kind,
                    error_message=e.message,
                    stages=stages,
                    duration_ms=int(duration * 1000)
                )
                return result, e

            stages.append(PipelineState.SUCCESS)
            duration = time.perf_counter() - started
            record_poster_outcome("success", duration)
            logger.info(
                "poster_completed",
                output_bytes=len(jpeg_bytes),
                badge_width=geometry.badge_width,
                x=geometry.x,
                y=geometry.y,
                duration_ms=int(duration * 1000)
            )
            return PipelineResult(
                request_id=request_id,
                state=PipelineState.SUCCESS,
                jpeg_bytes=jpeg_bytes,
                geometry=geometry,
                stages=stages,
                duration_ms=int(duration * 1000)
            ), None

    async def run(
        self,
        upload: Optional[bytes] = None,
        url: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> PipelineResult:
        """Run the pipeline; failures come back as a FAILURE result, never raised."""
        result, _ = await self._run(upload, url, request_id)
        return result

    async def render(
        self,
        upload: Optional[bytes] = None,
        url: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> PipelineResult:
        """Like run(), but re-raises the typed error so API exception handlers see it."""
        result, error = await self._run(upload, url, request_id)
        if error is not None:
            raise error
        return result
