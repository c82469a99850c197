import base64
import io

import pytest
from PIL import Image

from src.core.exceptions import DecodeFailedError, EncodeFailedError
from src.engines.poster.codec import decode_image, encode_jpeg, to_data_uri


def test_decode_jpeg(jpeg_1000x1500):
    image = decode_image(jpeg_1000x1500)

    assert image.size == (1000, 1500)
    assert image.mode == "RGB"


def test_decode_png(png_300x400):
    image = decode_image(png_300x400)

    assert image.size == (300, 400)
    assert image.mode == "RGB"


def test_decode_keeps_alpha(make_image):
    image = decode_image(make_image(64, 32, "PNG", mode="RGBA", color=(1, 2, 3, 100)))

    assert image.mode == "RGBA"
    assert image.getpixel((0, 0)) == (1, 2, 3, 100)


def test_decode_grayscale_becomes_rgb(make_image):
    image = decode_image(make_image(20, 20, "PNG", mode="L", color=128))

    assert image.mode == "RGB"


@pytest.mark.parametrize("fmt", ["WEBP", "GIF", "BMP"])
def test_decode_other_web_formats(make_image, fmt):
    image = decode_image(make_image(40, 30, fmt))

    assert image.size == (40, 30)


def test_decode_applies_exif_orientation():
    buffer = io.BytesIO()
    exif = Image.Exif()
    exif[0x0112] = 6  # rotate 90 CW on display
    Image.new("RGB", (100, 50), (200, 0, 0)).save(buffer, format="JPEG", exif=exif.tobytes())

    image = decode_image(buffer.getvalue())

    assert image.size == (50, 100)


@pytest.mark.parametrize("data", [b"", b"not an image at all", b"\x89PNG\r\n\x1a\n garbage"])
def test_decode_rejects_garbage(data):
    with pytest.raises(DecodeFailedError):
        decode_image(data)


def test_decode_rejects_truncated_jpeg():
    buffer = io.BytesIO()
    noise = Image.effect_noise((256, 256), 64).convert("RGB")
    noise.save(buffer, format="JPEG", quality=95)
    data = buffer.getvalue()

    with pytest.raises(DecodeFailedError):
        decode_image(data[: len(data) // 2])


def test_decode_rejects_unsupported_format(make_image):
    with pytest.raises(DecodeFailedError) as exc_info:
        decode_image(make_image(10, 10, "TIFF"))

    assert exc_info.value.code == 422


def test_encode_produces_jpeg(png_300x400):
    data = encode_jpeg(decode_image(png_300x400))

    assert data[:3] == b"\xff\xd8\xff"


def test_encode_is_deterministic(jpeg_1000x1500):
    image = decode_image(jpeg_1000x1500)

    assert encode_jpeg(image, 90) == encode_jpeg(image, 90)


def test_encode_round_trip_keeps_dimensions(png_300x400):
    encoded = encode_jpeg(decode_image(png_300x400))

    assert decode_image(encoded).size == (300, 400)


def test_encode_drops_alpha():
    image = Image.new("RGBA", (30, 30), (255, 0, 0, 10))

    decoded = Image.open(io.BytesIO(encode_jpeg(image)))

    assert decoded.mode == "RGB"


def test_encode_does_not_mutate_input():
    image = Image.new("RGBA", (30, 30), (255, 0, 0, 10))

    encode_jpeg(image)

    assert image.mode == "RGBA"


@pytest.mark.parametrize("mode", ["F", "I"])
def test_encode_rejects_unsupported_pixel_format(mode):
    with pytest.raises(EncodeFailedError):
        encode_jpeg(Image.new(mode, (10, 10)))


@pytest.mark.parametrize("quality", [-1, 101])
def test_encode_rejects_out_of_range_quality(quality):
    with pytest.raises(EncodeFailedError):
        encode_jpeg(Image.new("RGB", (10, 10)), quality)


def test_data_uri_carries_identical_bytes(jpeg_1000x1500):
    encoded = encode_jpeg(decode_image(jpeg_1000x1500))

    uri = to_data_uri(encoded)

    assert uri.startswith("data:image/jpeg;base64,")
    assert base64.b64decode(uri.split(",", 1)[1]) == encoded
