"""Loading and resizing of card photographs with Pillow."""

from __future__ import annotations

import io
from typing import Union

from PIL import Image, ImageOps, UnidentifiedImageError

ImageSource = Union[bytes, bytearray, Image.Image]


class ImageLoadError(Exception):
    """Raised when the input cannot be decoded as a raster image."""


def load_image(data: bytes | bytearray) -> Image.Image:
    """Decode image bytes into an RGB Pillow image.

    EXIF orientation is applied so phone photos come out upright.

    Raises:
        ImageLoadError: If the bytes are empty or not a decodable image.
    """
    if not data:
        raise ImageLoadError("Empty image data")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,  # Pillow reports broken PNG chunks this way
        ValueError,
    ) as e:
        raise ImageLoadError(f"Unable to load image: {e}") from e

    image = ImageOps.exif_transpose(image)
    if image.mode != "RGB":
        image = image.convert("RGB")
    return image


def ensure_image(source: ImageSource) -> Image.Image:
    """Return ``source`` as a Pillow image, decoding bytes when needed."""
    if isinstance(source, Image.Image):
        return source
    return load_image(source)


def downscale(image: Image.Image, max_edge: int) -> Image.Image:
    """Shrink so the longer edge is at most ``max_edge`` pixels.

    Returns the image itself when it already fits.
    """
    longest = max(image.size)
    if longest <= max_edge:
        return image
    ratio = max_edge / longest
    size = (max(1, round(image.width * ratio)), max(1, round(image.height * ratio)))
    return image.resize(size, Image.Resampling.LANCZOS)


def upscale(
    image: Image.Image, min_short_edge: int, max_long_edge: int | None = None
) -> Image.Image:
    """Enlarge so the shorter edge reaches ``min_short_edge`` pixels.

    With ``max_long_edge`` the enlargement also stops once the longer edge
    reaches it. Images are never shrunk here.

    Nearest-neighbour keeps bar edges hard instead of blurring them.
    """
    shortest = min(image.size)
    if shortest >= min_short_edge:
        return image
    ratio = min_short_edge / shortest
    if max_long_edge is not None:
        ratio = min(ratio, max_long_edge / max(image.size))
    if ratio <= 1:
        return image
    size = (round(image.width * ratio), round(image.height * ratio))
    return image.resize(size, Image.Resampling.NEAREST)
