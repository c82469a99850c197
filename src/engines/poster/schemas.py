from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.exceptions import ErrorKind


class PipelineState(str, Enum):
    """States a single poster request moves through."""
    START = "start"
    RESOLVING_INPUT = "resolving_input"
    DECODING_SOURCE = "decoding_source"
    ACQUIRING_BADGE = "acquiring_badge"
    COMPOSITING = "compositing"
    ENCODING = "encoding"
    SUCCESS = "success"
    FAILURE = "failure"


class InputOrigin(str, Enum):
    UPLOAD = "upload"
    URL = "url"


class SourceInput(BaseModel):
    """Raw source bytes plus where they came from."""
    data: bytes
    origin: InputOrigin
    url: Optional[str] = None


class PlacementGeometry(BaseModel):
    """Badge size and anchor in source-image pixel space."""
    model_config = ConfigDict(frozen=True)

    source_width: int = Field(..., gt=0)
    source_height: int = Field(..., gt=0)
    badge_width: int = Field(..., gt=0)
    badge_height: int = Field(..., gt=0)
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    clipped: bool = False

    @property
    def box(self) -> tuple:
        """(left, upper, right, lower) of the badge on the canvas."""
        return (self.x, self.y, self.x + self.badge_width, self.y + self.badge_height)


class PipelineResult(BaseModel):
    """Terminal outcome of one pipeline run."""
    request_id: str
    state: PipelineState
    jpeg_bytes: Optional[bytes] = None
    geometry: Optional[PlacementGeometry] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    stages: List[PipelineState] = Field(default_factory=list)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.state == PipelineState.SUCCESS
