"""1D barcode decoding with a sequence of retry profiles.

Loyalty-card barcodes photographed with a phone are often small and washed
out. The image is first enlarged and given a fixed contrast/brightness boost,
then decoded with each :class:`BarcodeProfile` in turn until one of them
yields a symbol.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from PIL import Image, ImageEnhance, ImageOps
from pyzbar.pyzbar import ZBarSymbol
from pyzbar.pyzbar import decode as zbar_decode

from cardbox.infrastructure.observability.logging import get_logger
from cardbox.infrastructure.observability.tracing import traced

from .image_loading import ImageLoadError, ImageSource, downscale, ensure_image, upscale
from .models import DecodedBarcode

logger = get_logger(__name__)

DEFAULT_MIN_SHORT_EDGE = 1600
DEFAULT_MAX_LONG_EDGE = 4000
CONTRAST_FACTOR = 1.5
BRIGHTNESS_FACTOR = 1.1

ALL_LINEAR_SYMBOLS: tuple[ZBarSymbol, ...] = (
    ZBarSymbol.EAN13,
    ZBarSymbol.EAN8,
    ZBarSymbol.UPCA,
    ZBarSymbol.UPCE,
    ZBarSymbol.CODE128,
    ZBarSymbol.CODE39,
    ZBarSymbol.CODABAR,
    ZBarSymbol.I25,
    ZBarSymbol.CODE93,
)
RETAIL_SYMBOLS: tuple[ZBarSymbol, ...] = (
    ZBarSymbol.EAN13,
    ZBarSymbol.EAN8,
    ZBarSymbol.UPCA,
    ZBarSymbol.UPCE,
)
INDUSTRIAL_SYMBOLS: tuple[ZBarSymbol, ...] = (
    ZBarSymbol.CODE128,
    ZBarSymbol.CODE39,
    ZBarSymbol.I25,
)


@dataclass(frozen=True)
class BarcodeProfile:
    """One decoding attempt: a resolution, a preprocessing and symbologies."""

    name: str
    symbols: tuple[ZBarSymbol, ...]
    max_edge: int | None = None  # None keeps the enhanced full resolution
    grayscale: bool = False
    autocontrast: bool = False


DEFAULT_PROFILES: tuple[BarcodeProfile, ...] = (
    BarcodeProfile(name="HighRes-AllFormats", symbols=ALL_LINEAR_SYMBOLS),
    BarcodeProfile(
        name="LowRes-EAN", symbols=RETAIL_SYMBOLS, max_edge=800, grayscale=True
    ),
    BarcodeProfile(
        name="HighContrast-Code128",
        symbols=INDUSTRIAL_SYMBOLS,
        max_edge=1200,
        autocontrast=True,
    ),
)


def enhance_for_barcodes(
    image: Image.Image,
    min_short_edge: int = DEFAULT_MIN_SHORT_EDGE,
    max_long_edge: int = DEFAULT_MAX_LONG_EDGE,
) -> Image.Image:
    """Upscale small images and apply the fixed contrast/brightness boost.

    The upscale stops at ``max_long_edge`` so a thin strip stays a few
    megapixels at most.
    """
    enlarged = upscale(image, min_short_edge, max_long_edge)
    boosted = ImageEnhance.Contrast(enlarged).enhance(CONTRAST_FACTOR)
    return ImageEnhance.Brightness(boosted).enhance(BRIGHTNESS_FACTOR)


def _prepare(image: Image.Image, profile: BarcodeProfile) -> Image.Image:
    prepared = image
    if profile.max_edge is not None:
        prepared = downscale(prepared, profile.max_edge)
    if profile.grayscale or profile.autocontrast:
        prepared = prepared.convert("L")
    if profile.autocontrast:
        prepared = ImageOps.autocontrast(prepared, cutoff=2)
    return prepared


class BarcodeDecoder:
    """Tries each profile in order and stops at the first decoded symbol.

    Args:
        profiles: Ordered decoding profiles.
        min_short_edge: Upscale target for the shorter image edge.
        max_long_edge: Upper bound for the longer edge when upscaling.
        inter_attempt_delay: Seconds to wait between two profiles. zbar is
            reentrant so the default is no delay.
    """

    def __init__(
        self,
        profiles: tuple[BarcodeProfile, ...] = DEFAULT_PROFILES,
        min_short_edge: int = DEFAULT_MIN_SHORT_EDGE,
        max_long_edge: int = DEFAULT_MAX_LONG_EDGE,
        inter_attempt_delay: float = 0.0,
    ) -> None:
        if not profiles:
            raise ValueError("At least one barcode profile is required")
        self.profiles = profiles
        self.min_short_edge = min_short_edge
        self.max_long_edge = max_long_edge
        self.inter_attempt_delay = inter_attempt_delay

    def decode(self, image: ImageSource) -> list[str]:
        """Return ``[payload]`` for the first decoded barcode, else ``[]``."""
        found = self.decode_with_format(image)
        return [found.value] if found else []

    @traced("decode_barcode")
    def decode_with_format(self, image: ImageSource) -> DecodedBarcode | None:
        """Decode the first barcode along with its symbology and profile."""
        try:
            picture = ensure_image(image)
        except ImageLoadError as e:
            logger.warning("Barcode decoding skipped: %s", e)
            return None

        enhanced = enhance_for_barcodes(
            picture, self.min_short_edge, self.max_long_edge
        )
        logger.debug(
            "Enhanced image for barcodes: %sx%s -> %sx%s",
            picture.width,
            picture.height,
            enhanced.width,
            enhanced.height,
        )

        for attempt, profile in enumerate(self.profiles):
            if attempt and self.inter_attempt_delay > 0:
                time.sleep(self.inter_attempt_delay)

            found = self._attempt(enhanced, profile)
            if found is not None:
                logger.info(
                    "Barcode decoded with profile %s: %s (%s)",
                    profile.name,
                    found.value,
                    found.symbology,
                )
                return found
            logger.debug("Profile %s found no barcode", profile.name)

        logger.info("No barcode found after %d profiles", len(self.profiles))
        return None

    def _attempt(
        self, image: Image.Image, profile: BarcodeProfile
    ) -> DecodedBarcode | None:
        prepared = _prepare(image, profile)
        try:
            symbols = zbar_decode(prepared, symbols=list(profile.symbols))
        except Exception as e:
            logger.warning("Barcode profile %s failed: %s", profile.name, e)
            return None

        for symbol in symbols:
            value = symbol.data.decode("utf-8", errors="replace").strip()
            if value:
                return DecodedBarcode(
                    value=value, symbology=str(symbol.type), profile=profile.name
                )
        return None


def decode_barcode(image: ImageSource) -> list[str]:
    """Decode a 1D barcode from image bytes or a Pillow image."""
    return BarcodeDecoder().decode(image)
