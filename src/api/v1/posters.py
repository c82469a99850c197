"""
Poster Endpoint

POST /api/v1/posters - multipart `file` or form `url` in, JPEG out.

Errors are raised as typed exceptions and rendered by the global
handlers as JSON with the matching status code.
"""

from fastapi import APIRouter, Depends, Response

from src.api.dependencies import PosterForm, get_pipeline
from src.api.pages import DOWNLOAD_FILENAME
from src.core.logging import get_logger
from src.engines.poster.codec import JPEG_MIME_TYPE
from src.engines.poster.pipeline import PosterPipeline

logger = get_logger(__name__)
router = APIRouter()


@router.post(
    "",
    response_class=Response,
    responses={200: {"content": {JPEG_MIME_TYPE: {}}, "description": "Badged poster as JPEG"}},
)
async def create_poster(
    form: PosterForm = Depends(),
    pipeline: PosterPipeline = Depends(get_pipeline),
):
    """
    Add the 4K badge to an image.

    - `file` wins when both `file` and `url` are sent
    - response headers describe where the badge was placed
    """
    upload = await form.read_upload()
    logger.info(
        "poster_request_received",
        has_upload=upload is not None,
        has_url=bool(form.url and form.url.strip())
    )

    result = await pipeline.render(upload=upload, url=form.url)
    geometry = result.geometry

    return Response(
        content=result.jpeg_bytes,
        media_type=JPEG_MIME_TYPE,
        headers={
            "X-Request-ID": result.request_id,
            "X-Badge-Width": str(geometry.badge_width),
            "X-Badge-Height": str(geometry.badge_height),
            "X-Badge-Position": f"{geometry.x},{geometry.y}",
            "Content-Disposition": f'inline; filename="{DOWNLOAD_FILENAME}"',
        }
    )
