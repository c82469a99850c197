"""
User-facing wording for pipeline failures.

Kept apart from the core so error kinds stay testable without caring
about copy changes.
"""

from typing import Optional

from src.core.exceptions import ErrorKind

USER_MESSAGES = {
    ErrorKind.NO_INPUT_PROVIDED: "No image provided. Upload a file or paste an image URL.",
    ErrorKind.INVALID_INPUT: "That input can't be used. Check the URL or try a smaller image.",
    ErrorKind.FETCH_FAILED: "Cannot fetch the image URL. Make sure the link is public and points to an image.",
    ErrorKind.DECODE_FAILED: "That file isn't an image we can read. Try a JPEG or PNG.",
    ErrorKind.BADGE_UNAVAILABLE: "The 4K badge is temporarily unavailable. Please try again in a moment.",
    ErrorKind.ENCODE_FAILED: "Something went wrong while saving your poster. Please try again.",
}

DEFAULT_MESSAGE = "Something went wrong. Please try again."

HTTP_STATUS = {
    ErrorKind.NO_INPUT_PROVIDED: 400,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.FETCH_FAILED: 502,
    ErrorKind.DECODE_FAILED: 422,
    ErrorKind.BADGE_UNAVAILABLE: 503,
    ErrorKind.ENCODE_FAILED: 500,
}


def user_message(kind: Optional[ErrorKind]) -> str:
    return USER_MESSAGES.get(kind, DEFAULT_MESSAGE)


def http_status(kind: Optional[ErrorKind]) -> int:
    return HTTP_STATUS.get(kind, 500)
