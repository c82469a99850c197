"""
Browser Endpoints

GET  /          - upload form
POST /generate  - add the badge, show the result inline with a download link
"""

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from src.api.dependencies import PosterForm, get_pipeline
from src.api.messages import http_status, user_message
from src.api.pages import render_error_page, render_form_page, render_result_page
from src.core.logging import get_logger
from src.engines.poster.codec import to_data_uri
from src.engines.poster.pipeline import PosterPipeline

logger = get_logger(__name__)
router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def index():
    """Upload / URL form."""
    return HTMLResponse(content=render_form_page())


@router.post("/generate", response_class=HTMLResponse)
async def generate(
    form: PosterForm = Depends(),
    pipeline: PosterPipeline = Depends(get_pipeline),
):
    """
    Run the poster pipeline for a browser form submission.

    Success renders the JPEG as a data URI; any failure renders a plain
    message and a link back to the form. Source bytes are never echoed.
    """
    upload = await form.read_upload()
    result = await pipeline.run(upload=upload, url=form.url)

    if not result.ok:
        return HTMLResponse(
            content=render_error_page(user_message(result.error_kind)),
            status_code=http_status(result.error_kind),
            headers={"X-Request-ID": result.request_id, "Cache-Control": "no-store"}
        )

    return HTMLResponse(
        content=render_result_page(to_data_uri(result.jpeg_bytes)),
        headers={"X-Request-ID": result.request_id, "Cache-Control": "no-store"}
    )
