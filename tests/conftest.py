import io
from typing import AsyncGenerator, Callable

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image

from src.main import app

SOURCE_COLOR = (40, 90, 160)


def _image_bytes(width: int, height: int, fmt: str = "JPEG", mode: str = "RGB", color=SOURCE_COLOR) -> bytes:
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory for encoded test images: make_image(w, h, fmt="PNG", mode="RGBA", color=...)."""
    return _image_bytes


@pytest.fixture
def jpeg_1000x1500() -> bytes:
    return _image_bytes(1000, 1500, "JPEG")


@pytest.fixture
def png_300x400() -> bytes:
    return _image_bytes(300, 400, "PNG")


@pytest.fixture
def badge_png() -> bytes:
    """A 200x100 opaque red badge."""
    return _image_bytes(200, 100, "PNG", mode="RGBA", color=(220, 20, 20, 255))


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an httpx.AsyncClient whose requests are answered by `handler`."""
    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return factory


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    # Run the app lifespan so app.state (http client, badge source) exists
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    app.dependency_overrides.clear()
