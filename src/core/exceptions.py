"""
Global Exception Handling

Typed error taxonomy for the poster pipeline and the FastAPI handlers
that turn it into structured JSON responses.
"""

import traceback
from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core.logging import get_logger, request_id_var

logger = get_logger(__name__)


class ErrorKind(str, Enum):
    """Failure categories a poster request can end in."""
    NO_INPUT_PROVIDED = "NO_INPUT_PROVIDED"
    INVALID_INPUT = "INVALID_INPUT"
    FETCH_FAILED = "FETCH_FAILED"
    DECODE_FAILED = "DECODE_FAILED"
    BADGE_UNAVAILABLE = "BADGE_UNAVAILABLE"
    ENCODE_FAILED = "ENCODE_FAILED"


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


# =============================================================================
# Custom Exceptions
# =============================================================================

class PosterBaseException(Exception):
    """Base exception for the poster service."""

    kind: Optional[ErrorKind] = None

    def __init__(
        self,
        message: str,
        code: int = 500,
        request_id: Optional[str] = None,
        stage: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.request_id = request_id or request_id_var.get()
        self.stage = stage
        self.details = details or {}
        super().__init__(self.message)


class NoInputProvidedError(PosterBaseException):
    """Raised when neither a file nor a URL was supplied."""

    kind = ErrorKind.NO_INPUT_PROVIDED

    def __init__(self, message: str = "No image provided", **kwargs):
        super().__init__(message, code=400, **kwargs)


class InvalidInputError(PosterBaseException):
    """Raised for a malformed URL or an input over the size limit."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=400, **kwargs)


class FetchFailedError(PosterBaseException):
    """Raised when the source image URL cannot be fetched."""

    kind = ErrorKind.FETCH_FAILED

    def __init__(self, message: str, url: Optional[str] = None, http_status: Optional[int] = None, **kwargs):
        super().__init__(message, code=502, **kwargs)
        self.details["url"] = url
        self.details["http_status"] = http_status


class DecodeFailedError(PosterBaseException):
    """Raised when bytes are not a supported, decodable raster image."""

    kind = ErrorKind.DECODE_FAILED

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=422, **kwargs)


class BadgeUnavailableError(PosterBaseException):
    """Raised when the badge source cannot produce a badge raster."""

    kind = ErrorKind.BADGE_UNAVAILABLE

    def __init__(self, message: str, source: Optional[str] = None, http_status: Optional[int] = None, **kwargs):
        super().__init__(message, code=503, **kwargs)
        self.details["source"] = source
        if http_status is not None:
            self.details["http_status"] = http_status


class EncodeFailedError(PosterBaseException):
    """Raised when the composited raster cannot be serialized to JPEG."""

    kind = ErrorKind.ENCODE_FAILED

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=500, **kwargs)


# =============================================================================
# Exception Handlers
# =============================================================================

def error_body(exc: PosterBaseException) -> Dict[str, Any]:
    """Structured JSON body for a poster error."""
    return {
        "error": exc.message,
        "kind": exc.kind.value if exc.kind else None,
        "request_id": exc.request_id or request_id_var.get(),
        "code": exc.code,
        "stage": exc.stage,
        "details": exc.details,
        "timestamp": _timestamp()
    }


def register_exception_handlers(app: FastAPI):
    """Register custom exception handlers with FastAPI app."""

    @app.exception_handler(PosterBaseException)
    async def poster_exception_handler(request: Request, exc: PosterBaseException):
        logger.warning(
            "poster_exception",
            error=exc.message,
            kind=exc.kind.value if exc.kind else None,
            code=exc.code,
            stage=exc.stage,
            details=exc.details
        )

        return JSONResponse(status_code=exc.code, content=error_body(exc))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
            traceback=traceback.format_exc()
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "request_id": request_id_var.get(),
                "code": 500,
                "timestamp": _timestamp()
            }
        )
