import httpx
import pytest

from src.core.exceptions import FetchFailedError, InvalidInputError, NoInputProvidedError
from src.engines.poster.resolver import InputResolver, validate_source_url
from src.engines.poster.schemas import InputOrigin

SOURCE_URL = "https://images.test/poster.jpg"


def _unreachable(request):
    raise AssertionError(f"unexpected fetch of {request.url}")


async def test_upload_is_used_as_is(mock_http):
    resolver = InputResolver(mock_http(_unreachable))

    source = await resolver.resolve(upload=b"raw-bytes")

    assert source.data == b"raw-bytes"
    assert source.origin == InputOrigin.UPLOAD


async def test_upload_wins_over_url(mock_http):
    resolver = InputResolver(mock_http(_unreachable))

    source = await resolver.resolve(upload=b"raw-bytes", url=SOURCE_URL)

    assert source.origin == InputOrigin.UPLOAD


@pytest.mark.parametrize("upload,url", [(None, None), (b"", None), (None, ""), (b"", "   ")])
async def test_no_input(mock_http, upload, url):
    resolver = InputResolver(mock_http(_unreachable))

    with pytest.raises(NoInputProvidedError) as exc_info:
        await resolver.resolve(upload=upload, url=url)

    assert exc_info.value.code == 400


@pytest.mark.parametrize("url", ["not a url", "ftp://images.test/a.jpg", "/relative/path.jpg", "https://"])
def test_malformed_urls_are_rejected(url):
    with pytest.raises(InvalidInputError):
        validate_source_url(url)


def test_url_is_stripped():
    assert validate_source_url(f"  {SOURCE_URL}\n") == SOURCE_URL


async def test_url_fetch(mock_http):
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, content=b"jpeg-bytes")

    source = await InputResolver(mock_http(handler)).resolve(url=SOURCE_URL)

    assert source.data == b"jpeg-bytes"
    assert source.origin == InputOrigin.URL
    assert source.url == SOURCE_URL
    assert seen == [SOURCE_URL]


@pytest.mark.parametrize("status", [404, 403, 500])
async def test_non_success_status_is_fetch_failure(mock_http, status):
    resolver = InputResolver(mock_http(lambda request: httpx.Response(status)))

    with pytest.raises(FetchFailedError) as exc_info:
        await resolver.resolve(url=SOURCE_URL)

    assert exc_info.value.details["http_status"] == status
    assert exc_info.value.code == 502


async def test_each_url_is_fetched_once(mock_http):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    with pytest.raises(FetchFailedError):
        await InputResolver(mock_http(handler)).resolve(url=SOURCE_URL)

    assert len(calls) == 1


@pytest.mark.parametrize(
    "error",
    [httpx.ConnectError, httpx.ReadTimeout, httpx.ConnectTimeout],
)
async def test_transport_errors_are_fetch_failures(mock_http, error):
    def handler(request):
        raise error("boom", request=request)

    with pytest.raises(FetchFailedError):
        await InputResolver(mock_http(handler)).resolve(url=SOURCE_URL)


async def test_oversized_upload(mock_http):
    resolver = InputResolver(mock_http(_unreachable), max_bytes=10)

    with pytest.raises(InvalidInputError):
        await resolver.resolve(upload=b"x" * 11)


async def test_oversized_download_by_declared_length(mock_http):
    handler = lambda request: httpx.Response(200, content=b"x" * 20, headers={"Content-Length": "20"})

    with pytest.raises(InvalidInputError):
        await InputResolver(mock_http(handler), max_bytes=10).resolve(url=SOURCE_URL)


async def test_oversized_download_without_declared_length(mock_http):
    async def body():
        for _ in range(5):
            yield b"x" * 4

    handler = lambda request: httpx.Response(200, content=body())

    with pytest.raises(InvalidInputError):
        await InputResolver(mock_http(handler), max_bytes=10).resolve(url=SOURCE_URL)
