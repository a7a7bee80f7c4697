"""Tests for photograph loading and resizing."""

import io

import pytest
from PIL import Image

from cardbox.infrastructure.ai.image_loading import (
    ImageLoadError,
    downscale,
    ensure_image,
    load_image,
    upscale,
)


def _encode(image: Image.Image, fmt: str = "PNG", **params) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format=fmt, **params)
    return buf.getvalue()


class TestLoadImage:
    def test_png_is_converted_to_rgb(self):
        image = load_image(_encode(Image.new("L", (10, 20), 128)))
        assert image.mode == "RGB"
        assert image.size == (10, 20)

    def test_exif_orientation_is_applied(self):
        exif = Image.Exif()
        exif[0x0112] = 6  # rotated 90 degrees clockwise
        data = _encode(Image.new("RGB", (40, 20), "white"), "JPEG", exif=exif)
        assert load_image(data).size == (20, 40)

    def test_empty_bytes(self):
        with pytest.raises(ImageLoadError):
            load_image(b"")

    def test_not_an_image(self):
        with pytest.raises(ImageLoadError):
            load_image(b"definitely not a picture")

    def test_truncated_image(self):
        data = _encode(Image.new("RGB", (64, 64), "red"))
        with pytest.raises(ImageLoadError):
            load_image(data[: len(data) // 2])


class TestEnsureImage:
    def test_pillow_image_is_returned_as_is(self):
        image = Image.new("RGB", (5, 5))
        assert ensure_image(image) is image

    def test_bytes_are_decoded(self):
        assert ensure_image(_encode(Image.new("RGB", (5, 5)))).size == (5, 5)


class TestResizing:
    def test_downscale_limits_the_longer_edge(self):
        assert downscale(Image.new("RGB", (1600, 800)), 800).size == (800, 400)

    def test_downscale_keeps_small_images(self):
        image = Image.new("RGB", (300, 200))
        assert downscale(image, 800) is image

    def test_upscale_reaches_the_short_edge_target(self):
        assert upscale(Image.new("RGB", (400, 200)), 1600).size == (3200, 1600)

    def test_upscale_keeps_large_images(self):
        image = Image.new("RGB", (2000, 1700))
        assert upscale(image, 1600) is image

    def test_upscale_stops_at_the_long_edge_cap(self):
        assert upscale(Image.new("L", (1000, 20)), 1600, 4000).size == (4000, 80)

    def test_upscale_cap_never_shrinks(self):
        image = Image.new("L", (5000, 20))
        assert upscale(image, 1600, 4000) is image
