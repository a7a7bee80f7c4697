"""QR code decoding with zbar.

Card photographs are shrunk to at most 800 px on the longer edge before
decoding; QR finder patterns survive the downscale and zbar runs much faster
on the smaller buffer.
"""

from __future__ import annotations

from pyzbar.pyzbar import ZBarSymbol
from pyzbar.pyzbar import decode as zbar_decode

from cardbox.infrastructure.observability.logging import get_logger
from cardbox.infrastructure.observability.tracing import traced

from .image_loading import ImageLoadError, ImageSource, downscale, ensure_image

logger = get_logger(__name__)

DEFAULT_MAX_EDGE = 800


class QRDecoder:
    """Decodes the payload of a QR code on a card."""

    def __init__(self, max_edge: int = DEFAULT_MAX_EDGE) -> None:
        self.max_edge = max_edge

    @traced("decode_qr")
    def decode(self, image: ImageSource) -> list[str]:
        """Return ``[payload]`` for the first readable QR code, else ``[]``.

        Load and decode failures are logged and reported as no result.
        """
        try:
            picture = ensure_image(image)
        except ImageLoadError as e:
            logger.warning("QR decoding skipped: %s", e)
            return []

        gray = downscale(picture, self.max_edge).convert("L")
        try:
            symbols = zbar_decode(gray, symbols=[ZBarSymbol.QRCODE])
        except Exception as e:
            logger.warning("QR decoder failed: %s", e)
            return []

        for symbol in symbols:
            payload = symbol.data.decode("utf-8", errors="replace").strip()
            if payload:
                logger.info("QR code decoded (%d chars)", len(payload))
                return [payload]

        logger.debug("No QR code found")
        return []


def decode_qr(image: ImageSource, max_edge: int = DEFAULT_MAX_EDGE) -> list[str]:
    """Decode a QR payload from image bytes or a Pillow image."""
    return QRDecoder(max_edge=max_edge).decode(image)
