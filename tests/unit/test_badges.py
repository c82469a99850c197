import httpx
import pytest

from src.core.exceptions import BadgeUnavailableError
from src.engines.poster.badge_cache import BadgeCache
from src.engines.poster.badges import (
    LABEL_COLOR,
    EmbeddedBadgeSource,
    RemoteBadgeSource,
    SynthesizedBadgeSource,
    create_badge_source,
    render_badge,
)

BADGE_URL = "https://badges.test/4k.png"


# =============================================================================
# Embedded
# =============================================================================

async def test_embedded_badge_is_large_enough_to_only_downscale():
    badge = await EmbeddedBadgeSource().produce(150)

    assert badge.mode == "RGBA"
    assert badge.size == (500, 250)


async def test_embedded_badge_returns_fresh_raster_per_call():
    source = EmbeddedBadgeSource()

    first = await source.produce(150)
    first.paste((0, 0, 0, 0), (0, 0, 500, 250))
    second = await source.produce(150)

    assert second.getpixel((250, 10))[3] == 255


async def test_embedded_badge_corrupt_asset(tmp_path):
    asset = tmp_path / "broken.png"
    asset.write_bytes(b"\x89PNG\r\n\x1a\nnope")

    with pytest.raises(BadgeUnavailableError):
        await EmbeddedBadgeSource(asset).produce(150)


# =============================================================================
# Synthesized
# =============================================================================

@pytest.mark.parametrize("width,expected", [(80, (80, 40)), (150, (150, 75)), (500, (500, 250))])
async def test_synthesized_badge_is_rendered_at_target_size(width, expected):
    badge = await SynthesizedBadgeSource().produce(width)

    assert badge.mode == "RGBA"
    assert badge.size == expected


def test_rendered_badge_has_rounded_corners_gradient_and_label():
    badge = render_badge(300)

    assert badge.getpixel((0, 0))[3] == 0
    assert badge.getpixel((299, 149))[3] == 0

    top = badge.getpixel((150, 2))
    bottom = badge.getpixel((150, 147))
    assert top[3] == 255 and bottom[3] == 255
    assert top[1] > bottom[1]

    assert LABEL_COLOR + (255,) in set(badge.getdata())


# =============================================================================
# Remote
# =============================================================================

async def test_remote_badge_fetch(mock_http, badge_png):
    client = mock_http(lambda request: httpx.Response(200, content=badge_png))

    badge = await RemoteBadgeSource(client, BADGE_URL).produce(150)

    assert badge.size == (200, 100)
    assert badge.mode == "RGBA"


@pytest.mark.parametrize("status", [404, 500, 503])
async def test_remote_badge_non_success_status(mock_http, status):
    client = mock_http(lambda request: httpx.Response(status))

    with pytest.raises(BadgeUnavailableError) as exc_info:
        await RemoteBadgeSource(client, BADGE_URL).produce(150)

    assert exc_info.value.details["http_status"] == status


async def test_remote_badge_network_error(mock_http):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BadgeUnavailableError):
        await RemoteBadgeSource(mock_http(handler), BADGE_URL).produce(150)


async def test_remote_badge_undecodable_body(mock_http):
    client = mock_http(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

    with pytest.raises(BadgeUnavailableError):
        await RemoteBadgeSource(client, BADGE_URL).produce(150)


async def test_remote_badge_cache_fetches_once(mock_http, badge_png):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, content=badge_png)

    cache = BadgeCache()
    source = RemoteBadgeSource(mock_http(handler), BADGE_URL, cache=cache)

    first = await source.produce(150)
    second = await source.produce(150)

    assert len(calls) == 1
    assert first is not second
    assert cache.hits == 1


async def test_remote_badge_failure_does_not_poison_cache(mock_http, badge_png):
    responses = [httpx.Response(500), httpx.Response(200, content=b"")]
    responses.append(httpx.Response(200, content=badge_png))

    cache = BadgeCache()
    source = RemoteBadgeSource(mock_http(lambda request: responses.pop(0)), BADGE_URL, cache=cache)

    with pytest.raises(BadgeUnavailableError):
        await source.produce(150)
    assert not cache.is_filled

    with pytest.raises(BadgeUnavailableError):
        await source.produce(150)
    assert not cache.is_filled

    badge = await source.produce(150)
    assert badge.size == (200, 100)
    assert cache.is_filled


# =============================================================================
# Factory
# =============================================================================

def test_factory_builds_each_source(mock_http):
    client = mock_http(lambda request: httpx.Response(404))

    assert isinstance(create_badge_source("embedded"), EmbeddedBadgeSource)
    assert isinstance(create_badge_source("synthesized"), SynthesizedBadgeSource)
    assert isinstance(create_badge_source("remote", client=client), RemoteBadgeSource)


def test_factory_rejects_bad_configuration():
    with pytest.raises(ValueError):
        create_badge_source("remote")
    with pytest.raises(ValueError):
        create_badge_source("svg")
